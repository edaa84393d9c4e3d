from __future__ import annotations

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def log(message: str, *, step: int | None = None) -> None:
    if not _verbose:
        return
    if step is None:
        print(f"[diffgrowth] {message}")
    else:
        print(f"[diffgrowth step={step}] {message}")
