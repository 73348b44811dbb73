"""
Config location tests.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from unittest import TestCase, mock

from tiller import config


class TestLocation(TestCase):

    def testHomeFromEnvironment(self):
        with mock.patch.dict(os.environ, {config.HOME_ENV: "/srv/tiller"}):
            self.assertEqual(config.home(), "/srv/tiller")
            self.assertEqual(config.default_location(), os.path.join("/srv/tiller", "config.toml"))

    def testHomeDefaultsToUserDirectory(self):
        with mock.patch.dict(os.environ, {config.HOME_ENV: ""}):
            self.assertEqual(config.home(), os.path.join(os.path.expanduser("~"), ".tiller"))

    def testCustomLocationResolvesExistingFile(self):
        with tempfile.TemporaryDirectory() as directory:
            location = os.path.join(directory, "custom.toml")
            with open(location, "w", encoding="utf-8"):
                pass
            cwd = os.getcwd()
            os.chdir(directory)
            try:
                self.assertEqual(config.custom_location("custom.toml"), os.path.abspath(location))
            finally:
                os.chdir(cwd)

    def testCustomLocationRejectsMissingFile(self):
        with tempfile.TemporaryDirectory() as directory:
            with self.assertRaises(ValueError):
                config.custom_location(os.path.join(directory, "missing.toml"))

    def testCustomLocationRejectsDirectory(self):
        with tempfile.TemporaryDirectory() as directory:
            with self.assertRaises(ValueError):
                config.custom_location(directory)

    def testCustomLocationRejectsEmpty(self):
        with self.assertRaises(ValueError):
            config.custom_location("  ")


if __name__ == "__main__":
    unittest.main()
