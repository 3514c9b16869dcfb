import os


def ensure_dir(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def pick_existing(*paths: str) -> str:
    """First path that exists, else the first one given."""
    for p in paths:
        if p and os.path.exists(p):
            return p
    return paths[0] if paths else ""
