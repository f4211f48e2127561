"""
Normalization options.

Plain dataclass with defaults; values are checked once on construction so
the conversion passes can trust them.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import OptionsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Options:
    """
    Configuration for a single normalization run.

    Only keep_named_groups changes the tree topology. base_path is used to
    resolve relative image references; the remaining fields are quality
    hints for unit conversion, text layout and bounding boxes.
    """
    keep_named_groups: bool = False
    base_path: Optional[Path] = None
    dpi: float = 96.0
    font_family: str = 'Times New Roman'
    font_size: float = 12.0
    text_advance: float = 0.5       # average glyph advance, in em
    curve_tolerance: float = 0.25   # max chord error when flattening curves

    def __post_init__(self):
        if not isinstance(self.keep_named_groups, bool):
            raise OptionsError(f"keep_named_groups must be a bool, got {self.keep_named_groups!r}")

        if self.base_path is not None:
            if not isinstance(self.base_path, (str, os.PathLike)):
                raise OptionsError(f"base_path must be a path, got {self.base_path!r}")
            object.__setattr__(self, 'base_path', Path(self.base_path))

        for name in ('dpi', 'font_size', 'text_advance', 'curve_tolerance'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not value > 0:
                raise OptionsError(f"{name} must be a positive number, got {value!r}")
            object.__setattr__(self, name, float(value))

        if not isinstance(self.font_family, str) or not self.font_family.strip():
            raise OptionsError(f"font_family must be a non-empty string, got {self.font_family!r}")

        logger.debug(f"Options: {self}")
