import os

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep the user's NETCLOCK_* environment and config file out of every test."""
    for name in list(os.environ):
        if name.startswith("NETCLOCK_"):
            monkeypatch.delenv(name)
    config_file = tmp_path / "netclock-config.json"
    monkeypatch.setattr("netclock.settings._netclock_settings.default_config_path", lambda: config_file)
    return config_file
