import argparse
import datetime
import json
import logging
import os
import shutil

from errors import DuplicateResourceError
from schemas import DietSessionIn, ExerciseRecordIn, FoodEntryIn, WorkoutSessionIn
from tools import TimeTools

DEMO_USER = "demo"
DEMO_PASSWORD = "demo-password"


def export_user(db_path: str, yaml_path: str, username: str, output_dir: str = ".") -> list[str]:
    """Write the workout and diet sessions of ``username`` as JSON files."""
    from rest_api import WorkoutAPI

    api = WorkoutAPI(db_path=db_path, yaml_path=yaml_path)
    zone = api.default_zone()
    size = api.settings.get_int("page_size", 100)
    sessions = []
    page = 0
    while True:
        batch = api.session_service.list_sessions(username, page, size, zone)
        sessions.extend(s.model_dump(mode="json") for s in batch)
        if len(batch) < size:
            break
        page += 1
    diets = []
    page = 0
    while True:
        batch = api.diet_service.list_sessions(username, page, size)
        diets.extend(d.model_dump(mode="json") for d in batch)
        if len(batch) < size:
            break
        page += 1
    paths = []
    for name, data in (("workout_sessions", sessions), ("diet_sessions", diets)):
        out_path = os.path.join(output_dir, f"{username}_{name}.json")
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        paths.append(out_path)
    return paths


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Create the demo user with a week of workouts and today's meals."""
    from rest_api import WorkoutAPI

    api = WorkoutAPI(db_path=db_path, yaml_path=yaml_path)
    try:
        api.auth.register(DEMO_USER, "demo@example.com", DEMO_PASSWORD)
    except DuplicateResourceError:
        print("Demo user already exists")
        return
    zone = api.default_zone()
    today = TimeTools.today(zone)
    types = {t.name: t.id for t in api.routine_service.list_exercise_types()}
    for offset, weight in ((6, 60.0), (4, 62.5), (2, 65.0), (0, 67.5)):
        api.session_service.create_session(
            DEMO_USER,
            WorkoutSessionIn(
                date=today - datetime.timedelta(days=offset),
                duration=45,
                notes="Demo session",
                exercises=[
                    ExerciseRecordIn(
                        exercise_id=types["Bench Press"],
                        set_number=n,
                        reps=8,
                        weight=weight,
                    )
                    for n in (1, 2, 3)
                ]
                + [ExerciseRecordIn(exercise_id=types["Squat"], set_number=1, reps=5, weight=weight + 20)],
            ),
            zone,
        )
    api.diet_service.save_session(
        DEMO_USER,
        DietSessionIn(
            date=today,
            food_entries=[
                FoodEntryIn(meal_type="BREAKFAST", food_name="Oatmeal", calories=350, protein=12.5, carbs=60.0, fat=6.0),
                FoodEntryIn(meal_type="LUNCH", food_name="Chicken Salad", calories=520, protein=42.0, carbs=18.0, fat=28.5),
            ],
        ),
    )
    print("Demo data inserted")


def serve(db_path: str, yaml_path: str, host: str, port: int) -> None:
    import uvicorn

    from rest_api import WorkoutAPI

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    api = WorkoutAPI(db_path=db_path, yaml_path=yaml_path)
    uvicorn.run(api.app, host=host, port=port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    srv = sub.add_parser("serve")
    srv.add_argument("--db", default="workout.db")
    srv.add_argument("--yaml", default="settings.yaml")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="workout.db")
    exp.add_argument("--yaml", default="settings.yaml")
    exp.add_argument("--user", required=True)
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")
    demo.add_argument("--yaml", default="settings.yaml")

    args = parser.parse_args()

    if args.cmd == "serve":
        serve(args.db, args.yaml, args.host, args.port)
    elif args.cmd == "export":
        for path in export_user(args.db, args.yaml, args.user, args.out):
            print(path)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)


if __name__ == "__main__":
    main()
