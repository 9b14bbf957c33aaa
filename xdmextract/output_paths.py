# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Output file naming

For an input ``abc.jpg`` every output shares the base ``abc``:
``abc_xmp.xml``, ``abc_xap.xml``, ``abc_0.jpg``, ``abc_depth_0.png``.

Copyright 2025 DNAi inc.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class OutputPaths:
    """Paths derived from one input file."""
    base: Path

    @classmethod
    def from_input(cls, input_path: Union[str, Path], output_dir: Optional[Union[str, Path]] = None) -> "OutputPaths":
        """
        Derive the output base from an input path.

        Args:
            input_path: Source JPEG path
            output_dir: Directory for outputs (default: beside the input)

        Returns:
            OutputPaths with the input's final suffix removed
        """
        input_path = Path(input_path)
        base = input_path.with_suffix('')
        if output_dir is not None:
            base = Path(output_dir) / base.name
        return cls(base)

    def _sibling(self, suffix: str) -> Path:
        return self.base.with_name(self.base.name + suffix)

    @property
    def xmp(self) -> Path:
        """Extended XMP accumulator."""
        return self._sibling("_xmp.xml")

    @property
    def xap(self) -> Path:
        """Standard XMP accumulator."""
        return self._sibling("_xap.xml")

    def image(self, index: int) -> Path:
        return self._sibling(f"_{index}.jpg")

    def depth(self, index: int) -> Path:
        return self._sibling(f"_depth_{index}.png")
