"""
Tests for the command-line entry point.
"""

import json

from navpilot.main import load_settings, parse_args, main


class TestCli:
    """Tests for argument and settings handling."""

    def test_defaults(self):
        """Test default command-line options."""
        args = parse_args([])

        assert args.port == 3000
        assert args.simulate is False
        assert args.serve is False
        assert args.log_level == "INFO"

    def test_load_settings(self, tmp_path):
        """Test loading settings from JSON."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"deviceId": "bridge", "modeSet": "legacy"}))

        assert load_settings(str(path)) == {"deviceId": "bridge", "modeSet": "legacy"}

    def test_invalid_settings_exit_code(self, tmp_path):
        """Test that bad settings exit with status 1."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"modeSet": "fancy"}))

        assert main(["--settings", str(path)]) == 1
