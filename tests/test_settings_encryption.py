import os
import sys
import unittest
import keyring
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig, env_override
from settings_schema import validate_settings

class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1
    def __init__(self):
        self.store = {}
    def get_password(self, service, username):
        return self.store.get((service, username))
    def set_password(self, service, username, password):
        self.store[(service, username)] = password
    def delete_password(self, service, username):
        self.store.pop((service, username), None)

class SettingsEncryptionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = DummyKeyring()
        keyring.set_keyring(self.backend)
        os.environ['ENCRYPT_SETTINGS'] = '1'
        self.path = 'enc_settings.yaml'
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
        os.environ.pop('ENCRYPT_SETTINGS', None)

    def test_encrypt_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'jwt_secret': 'k' * 40, 'default_timezone': 'UTC'})
        self.assertTrue(os.path.exists(self.path))
        with open(self.path, encoding='utf-8') as f:
            self.assertNotIn('k' * 40, f.read())
        self.assertEqual(self.backend.store[('workout_tracker', 'jwt_secret')], 'k' * 40)
        data = cfg.load()
        self.assertEqual(data['jwt_secret'], 'k' * 40)
        self.assertEqual(data['default_timezone'], 'UTC')

    def test_missing_keyring_entry_dropped(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'jwt_secret': 'k' * 40})
        self.backend.store.clear()
        self.assertNotIn('jwt_secret', cfg.load())


class YamlConfigTest(unittest.TestCase):
    def setUp(self) -> None:
        self.path = 'plain_settings.yaml'

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
        os.environ.pop('JWT_SECRET', None)

    def test_missing_file(self) -> None:
        self.assertEqual(YamlConfig(self.path).load(), {})

    def test_none_values_not_written(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'default_timezone': 'UTC', 'jwt_secret': None})
        self.assertEqual(cfg.load(), {'default_timezone': 'UTC'})

    def test_non_mapping_rejected(self) -> None:
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('- just\n- a list\n')
        with self.assertRaises(ValueError):
            YamlConfig(self.path).load()

    def test_env_override(self) -> None:
        os.environ.pop('JWT_SECRET', None)
        self.assertIsNone(env_override('jwt_secret'))
        os.environ['JWT_SECRET'] = 'from-env'
        self.assertEqual(env_override('jwt_secret'), 'from-env')
        self.assertIsNone(env_override('page_size'))


class SettingsSchemaTest(unittest.TestCase):
    def test_valid(self) -> None:
        validate_settings({'default_timezone': 'Europe/Berlin', 'page_size': 20})
        validate_settings({'jwt_secret': True})

    def test_invalid(self) -> None:
        with self.assertRaises(ValueError):
            validate_settings({'default_timezone': 'Atlantis/Capital'})
        with self.assertRaises(ValueError):
            validate_settings({'default_timezone': 'America'})
        with self.assertRaises(ValueError):
            validate_settings({'jwt_expiration_minutes': 0})
        with self.assertRaises(ValueError):
            validate_settings({'page_size': 'many'})

if __name__ == '__main__':
    unittest.main()
