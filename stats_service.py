from __future__ import annotations
import datetime
import logging
from typing import Callable, List, Optional

from db import UserRepository, WorkoutSessionRepository, DietSessionRepository
from errors import UserNotFoundError
from mappers import session_to_dto
from schemas import DietDashboard, VolumeDataPoint, WorkoutDashboard, WorkoutSessionOut
from tools import MathTools, TimeTools

logger = logging.getLogger(__name__)


class StatisticsService:
    """Build the per-user dashboard summaries.

    Every figure is computed fresh from the repositories for the zone the
    caller asks for; missing aggregates are reported as zero.
    """

    HEATMAP_DAYS = 365
    RECENT_SESSION_LIMIT = 3
    VOLUME_CHART_LIMIT = 10
    MACROS = ("calories", "protein", "carbs", "fat")

    def __init__(
        self,
        user_repo: UserRepository,
        session_repo: WorkoutSessionRepository,
        diet_repo: DietSessionRepository,
        session_mapper: Callable[[dict, datetime.tzinfo], WorkoutSessionOut] = session_to_dto,
    ) -> None:
        self.users = user_repo
        self.sessions = session_repo
        self.diets = diet_repo
        self.map_session = session_mapper

    def _resolve_user(self, username: str) -> dict:
        user = self.users.fetch_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    def workout_dashboard(
        self,
        username: str,
        tz: str,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutDashboard:
        """Return totals, recent sessions, volume chart and heatmap for ``username``."""
        user = self._resolve_user(username)
        zone = TimeTools.zone(tz)
        now = now or TimeTools.utcnow()
        month_start = TimeTools.start_of_month(zone, now)
        logger.debug(
            f"building workout dashboard for {username} in {tz} (month from {month_start.isoformat()})"
        )

        total_volume, total_workouts, monthly_workouts = self._aggregate_stats(
            user["id"], month_start
        )
        chart = self._volume_series(user["id"], zone)
        start, levels = self._heatmap(user["id"], zone, now)
        recent = self._recent_sessions(user["id"], zone)
        return WorkoutDashboard(
            total_volume=total_volume,
            total_workouts=total_workouts,
            monthly_workouts=monthly_workouts,
            recent_sessions=tuple(recent),
            volume_chart_data=tuple(chart),
            heatmap_start_date=start,
            heatmap_levels=tuple(levels),
        )

    def _aggregate_stats(
        self, user_id: int, month_start: datetime.datetime
    ) -> tuple[float, int, int]:
        total_volume = MathTools.coalesce(self.sessions.sum_volume_for_user(user_id))
        total_workouts = int(MathTools.coalesce(self.sessions.count_for_user(user_id)))
        monthly = int(
            MathTools.coalesce(self.sessions.count_for_user_since(user_id, month_start))
        )
        return total_volume, total_workouts, monthly

    def _volume_series(
        self, user_id: int, zone: datetime.tzinfo
    ) -> List[VolumeDataPoint]:
        rows = self.sessions.recent_session_volumes(user_id, self.VOLUME_CHART_LIMIT)
        points = [
            VolumeDataPoint(
                date=TimeTools.label(ts, zone), volume=MathTools.coalesce(volume)
            )
            for ts, volume in rows
        ]
        # rows arrive newest first; the chart reads oldest to newest
        points.reverse()
        return points

    def _heatmap(
        self, user_id: int, zone: datetime.tzinfo, now: datetime.datetime
    ) -> tuple[datetime.date, List[int]]:
        today = TimeTools.today(zone, now)
        start = today - datetime.timedelta(days=self.HEATMAP_DAYS - 1)
        counts = self.sessions.session_counts_by_date(
            user_id, TimeTools.start_of_day(start, zone), zone
        )
        levels = [
            MathTools.heatmap_level(counts.get(start + datetime.timedelta(days=i)))
            for i in range(self.HEATMAP_DAYS)
        ]
        return start, levels

    def _recent_sessions(
        self, user_id: int, zone: datetime.tzinfo
    ) -> List[WorkoutSessionOut]:
        rows = self.sessions.fetch_recent(user_id, self.RECENT_SESSION_LIMIT)
        return [self.map_session(row, zone) for row in rows]

    def diet_daily_summary(
        self,
        username: str,
        tz: str,
        now: Optional[datetime.datetime] = None,
    ) -> DietDashboard:
        """Return summed macros of today's diet session in ``tz``."""
        user = self._resolve_user(username)
        zone = TimeTools.zone(tz)
        today = TimeTools.today(zone, now)
        session = self.diets.fetch_for_date(user["id"], today)
        if session is None:
            logger.debug(f"no diet session for {username} on {today.isoformat()}")
            return DietDashboard()
        totals = dict.fromkeys(self.MACROS, 0)
        for entry in session.get("food_entries", []):
            for key in self.MACROS:
                totals[key] += int(MathTools.coalesce(entry.get(key)))
        return DietDashboard(has_data=True, **totals)
