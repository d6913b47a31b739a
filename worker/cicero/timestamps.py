"""Video timestamp helpers using HTML5 media fragments (``#t=<seconds>``)."""


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``H:MM:SS``, or ``M:SS`` under an hour."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_timestamp(timestamp: str) -> int:
    """Parse ``H:MM:SS``, ``M:SS`` or bare seconds. Unreadable input gives 0."""
    try:
        parts = [int(part) for part in timestamp.strip().split(":")]
    except ValueError:
        return 0

    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    return parts[0] if parts else 0


def timestamp_url(video_url: str, seconds: float) -> str:
    """Point a video URL at ``seconds``, replacing any existing fragment."""
    base_url = video_url.split("#")[0]
    return f"{base_url}#t={int(seconds)}"


def supports_media_fragments(video_url: str) -> bool:
    # Cablecast VOD and other plain MP4 downloads honour byte-range seeks
    return video_url.split("#")[0].split("?")[0].endswith(".mp4")
