"""Report caption formatting for a geolocation fix."""

from __future__ import annotations

MAPS_URL = "https://www.google.com/maps?q={lat:.6f},{lng:.6f}"


def format_location_caption(
    latitude: float, longitude: float, note: str | None = None,
) -> str:
    """Build the report caption sent with a captured photo.

    Coordinates are rendered with six decimals, followed by a map link
    using Telegram Markdown link syntax.
    """
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"longitude out of range: {longitude}")

    lines = [
        f"Report received from LAT: {latitude:.6f}, LNG: {longitude:.6f}",
        f"[Open in Maps]({MAPS_URL.format(lat=latitude, lng=longitude)})",
    ]
    if note and note.strip():
        lines.append(note.strip())
    return "\n".join(lines)
