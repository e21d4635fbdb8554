"""
Tests for loading configuration files.
"""
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from demand_replenishment.config import Config
from demand_replenishment.exceptions import ConfigError

class TestConfig(unittest.TestCase):
    """Test cases for Config with an explicit settings file."""

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.saved_instance = Config._instance
        Config._instance = None

    def tearDown(self):
        Config._instance = self.saved_instance
        shutil.rmtree(self.directory)

    def load(self, path):
        with patch.dict(os.environ, {'DEMAND_REPLENISHMENT_CONFIG': str(path)}):
            return Config()

    def test_reads_explicit_file(self):
        """Test that values come from the named file and defaults fill the rest."""
        path = Path(self.directory) / 'settings.ini'
        path.write_text("[SEASONALITY]\nintensity_threshold = 0.2\n\n[BATCH_PROCESS]\nbatch_size = 5\n")

        loaded = self.load(path)

        self.assertEqual(loaded.seasonality_config['intensity_threshold'], 0.2)
        self.assertEqual(loaded.seasonality_config['min_points'], 12)
        self.assertEqual(loaded.batch_config['batch_size'], 5)
        self.assertEqual(loaded.replenishment_config['safety_buffer'], 1.2)

    def test_missing_explicit_file(self):
        """Test that a named file that does not exist is a configuration error."""
        with self.assertRaises(ConfigError) as context:
            self.load(Path(self.directory) / 'missing.ini')

        self.assertIn('missing.ini', context.exception.details['path'])

    def test_unparsable_file(self):
        """Test that a file without section headers is a configuration error."""
        path = Path(self.directory) / 'settings.ini'
        path.write_text("batch_size = 5\n")

        with self.assertRaises(ConfigError):
            self.load(path)

if __name__ == '__main__':
    unittest.main()
