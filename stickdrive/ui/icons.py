from __future__ import annotations

from PIL import Image, ImageDraw

# bar colours by signal level; matches the console's red/orange/yellow/green scale
_LEVEL_COLORS = {
    0: (239, 68, 68, 255),
    1: (249, 115, 22, 255),
    2: (234, 179, 8, 255),
    3: (34, 197, 94, 255),
    4: (34, 197, 94, 255),
}
_IDLE_BAR = (71, 85, 105, 255)


def bar_color(level: int):
    return _LEVEL_COLORS.get(max(0, min(4, level)), _IDLE_BAR)


def make_icon(powered: bool, level: int, size: int = 64) -> Image.Image:
    """Four signal bars plus a power dot in the top-left corner."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    d = ImageDraw.Draw(img)

    unit = size / 16.0
    color = bar_color(level)
    for bar in range(1, 5):
        h = (bar * 3 + 4) * unit * 0.8
        x0 = unit * (2 + (bar - 1) * 3.4)
        x1 = x0 + unit * 2.2
        y1 = size - unit
        fill = color if (level > 0 and bar <= level) else _IDLE_BAR
        d.rounded_rectangle((x0, y1 - h, x1, y1), radius=unit * 0.6, fill=fill)

    if level == 0:
        # offline: red cross instead of the power dot
        d.line((unit, unit, unit * 5, unit * 5), fill=_LEVEL_COLORS[0], width=max(1, int(unit)))
        d.line((unit, unit * 5, unit * 5, unit), fill=_LEVEL_COLORS[0], width=max(1, int(unit)))
    else:
        dot = (59, 130, 246, 255) if powered else (255, 255, 255, 80)
        d.ellipse((unit, unit, unit * 5, unit * 5), fill=dot)
    return img


def signal_label(level: int, latency_ms: float | None) -> str:
    if level == 0:
        return "offline"
    if latency_ms is None:
        return "no reply"
    return f"{int(round(latency_ms))}ms"
