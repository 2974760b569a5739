from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from stickdrive.core.config import DEFAULT_PRESET, Preset


@dataclass
class OperatorProfile:
    max_speed: int
    damping: float
    transport: str          # "http" | "socket" | "loopback"
    http_base_url: str
    socket_url: str
    pad_center_x: float = 960.0
    pad_center_y: float = 540.0

    @classmethod
    def from_preset(cls, preset: Preset = DEFAULT_PRESET) -> "OperatorProfile":
        return cls(
            max_speed=preset.max_speed,
            damping=preset.damping,
            transport="http",
            http_base_url=preset.channel.http_base_url,
            socket_url=preset.channel.socket_url,
        )


def _profile_path() -> Path:
    p = Path.home() / ".config" / "stickdrive"
    p.mkdir(parents=True, exist_ok=True)
    return p / "profile.json"


def save_profile(prof: OperatorProfile, path: Path | None = None) -> None:
    (path or _profile_path()).write_text(json.dumps(asdict(prof), indent=2))


def load_profile(path: Path | None = None) -> Optional[dict]:
    p = path or _profile_path()
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text())
    except json.JSONDecodeError as e:
        print(f"[Profile] ignoring unreadable {p}: {e}")
        return None


def resolve_profile(preset: Preset = DEFAULT_PRESET, path: Path | None = None) -> OperatorProfile:
    """Preset defaults <- saved profile <- environment."""
    prof = OperatorProfile.from_preset(preset)

    saved = load_profile(path)
    if saved:
        known = {f.name for f in fields(OperatorProfile)}
        for k, v in saved.items():
            if k in known:
                setattr(prof, k, v)

    transport = os.environ.get("STICKDRIVE_TRANSPORT")
    if transport:
        prof.transport = transport.lower()
    url = os.environ.get("STICKDRIVE_URL")
    if url:
        if prof.transport == "socket":
            prof.socket_url = url
        else:
            prof.http_base_url = url
    return prof
