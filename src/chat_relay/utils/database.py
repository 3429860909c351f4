import uuid


def generate_uid() -> str:
    return uuid.uuid4().hex


def join_path(*segments: str) -> str:
    """Join tree-store path segments with '/', ignoring empty pieces and stray slashes."""
    return "/".join(part for segment in segments for part in str(segment).split("/") if part)


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]
