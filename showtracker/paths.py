from __future__ import annotations
from pathlib import Path
from platformdirs import PlatformDirs

APP = "showtracker"
AUTHOR = "showtracker"


def get_dirs() -> dict[str, Path]:
    d = PlatformDirs(appname=APP, appauthor=AUTHOR, roaming=True)
    paths = {
        "data": Path(d.user_data_dir),     # tracker DB
        "config": Path(d.user_config_dir), # config.yaml
        "logs": Path(d.user_log_dir),      # rotating JSON logs
    }
    for p in paths.values():
        p.mkdir(parents=True, exist_ok=True)
    return paths
