# prerenderer/output.py
from pathlib import Path


def output_path(output_dir, route: str) -> Path:
    """<output_dir>/<route>/index.html; "/" maps to <output_dir>/index.html."""
    parts = [seg for seg in route.split("/") if seg]
    return Path(output_dir).joinpath(*parts, "index.html")


def write_content(output_dir, route: str, html: str) -> Path:
    path = output_path(output_dir, route)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    return path
