"""
File operation utilities
"""

from pathlib import Path
from typing import Dict, Iterable, List

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.gif', '.tiff', '.webp'}

def get_image_files(directory: str, recursive: bool = False) -> List[str]:
    """Get all image files in directory, sorted by name"""
    path = Path(directory)
    pattern = '**/*' if recursive else '*'

    image_files = [
        f for f in path.glob(pattern)
        if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS
    ]

    return [str(f) for f in sorted(image_files)]

def get_video_files(directory: str, extensions: Iterable[str] = ('.mp4',)) -> List[str]:
    """Get video files directly inside directory, sorted by name"""
    wanted = {ext.lower() for ext in extensions}
    return [
        str(f) for f in sorted(Path(directory).iterdir())
        if f.is_file() and f.suffix.lower() in wanted
    ]

def discover_assets(keyframes_dir: str) -> Dict[str, List[str]]:
    """
    Map every asset ID to its frame paths

    Each sub-directory of keyframes_dir is one asset, named after the video
    it was sampled from. Assets are returned in lexicographic order.
    """
    root = Path(keyframes_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Keyframes directory not found: {keyframes_dir}")

    return {
        d.name: get_image_files(str(d))
        for d in sorted(root.iterdir())
        if d.is_dir()
    }

def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
