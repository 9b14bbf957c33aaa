# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Inspection of decoded images and depth maps

Requires PIL/Pillow (``pip install xdmextract[imaging]``).

Copyright 2025 DNAi inc.
"""

from pathlib import Path
from typing import Any, Dict, List


def describe_image(path: Path) -> Dict[str, Any]:
    """
    Report format, size and mode of one decoded file.

    A file Pillow cannot open is reported with ``readable: False`` and the
    reason instead of raising.

    Raises:
        NotImplementedError: If Pillow is not installed
    """
    try:
        from PIL import Image, UnidentifiedImageError
    except ImportError:
        raise NotImplementedError(
            "Describing decoded images requires PIL/Pillow library. "
            "Install it with: pip install Pillow"
        )

    info: Dict[str, Any] = {"path": str(path), "bytes": Path(path).stat().st_size}
    try:
        with Image.open(path) as img:
            info.update({
                "readable": True,
                "format": img.format,
                "width": img.width,
                "height": img.height,
                "mode": img.mode,
            })
    except (UnidentifiedImageError, OSError) as e:
        info.update({"readable": False, "error": str(e)})
    return info


def describe_images(paths: List[Path]) -> List[Dict[str, Any]]:
    return [describe_image(p) for p in paths]
