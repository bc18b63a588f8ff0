"""Resize geometry parsing and target-size math.

Accepted forms::

    [50, 50]   fit within 50x50, keep aspect ratio
    "50x50"    same as above
    "50x50!"   exactly 50x50, ignore aspect ratio
    "100x"     width 100, height follows aspect ratio
    "x50"      height 50, width follows aspect ratio
    "50%"      scale both sides to 50%
    "640x480>" shrink to fit, never enlarge
    "64x64<"   enlarge to fit, never shrink
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal, Sequence

from attachkit.domain.errors import ConfigurationError

_GEOMETRY = re.compile(r"^(?P<w>\d+)?x(?P<h>\d+)?(?P<flag>[!<>])?$")
_PERCENT = re.compile(r"^(?P<pct>\d+(?:\.\d+)?)%$")

Flag = Literal["", "!", "<", ">"]


@dataclass(frozen=True)
class Geometry:
    """A parsed resize instruction."""

    width: int | None = None
    height: int | None = None
    flag: Flag = ""
    percent: float | None = None

    @classmethod
    def parse(cls, value: Any) -> "Geometry":
        """Parse a geometry string or a ``[width, height]`` pair."""
        if isinstance(value, Geometry):
            return value
        if isinstance(value, str):
            return cls._parse_string(value.strip())
        if isinstance(value, Sequence) and len(value) == 2:
            try:
                width, height = int(value[0]), int(value[1])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid geometry {value!r}: {e}") from e
            return cls._checked(width, height, "")
        raise ConfigurationError(f"Invalid geometry {value!r}: expected 'WxH' or [width, height]")

    @classmethod
    def _parse_string(cls, text: str) -> "Geometry":
        pct = _PERCENT.match(text)
        if pct:
            percent = float(pct.group("pct"))
            if percent <= 0:
                raise ConfigurationError(f"Invalid geometry {text!r}: percentage must be positive")
            return cls(percent=percent)

        match = _GEOMETRY.match(text)
        if not match or (match.group("w") is None and match.group("h") is None):
            raise ConfigurationError(f"Invalid geometry {text!r}")
        width = int(match.group("w")) if match.group("w") else None
        height = int(match.group("h")) if match.group("h") else None
        flag = match.group("flag") or ""
        if flag == "!" and (width is None or height is None):
            raise ConfigurationError(f"Invalid geometry {text!r}: '!' needs both sides")
        return cls._checked(width, height, flag)

    @classmethod
    def _checked(cls, width: int | None, height: int | None, flag: Flag) -> "Geometry":
        for side in (width, height):
            if side is not None and side <= 0:
                raise ConfigurationError(f"Invalid geometry {width}x{height}: sides must be positive")
        return cls(width=width, height=height, flag=flag)

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        """Return the output dimensions for a ``width`` x ``height`` source."""
        if self.percent is not None:
            scale = self.percent / 100.0
            return max(1, round(width * scale)), max(1, round(height * scale))

        if self.flag == "!":
            return self.width, self.height

        scales = []
        if self.width is not None:
            scales.append(self.width / width)
        if self.height is not None:
            scales.append(self.height / height)
        scale = min(scales)

        if self.flag == ">" and scale >= 1:
            return width, height
        if self.flag == "<" and scale <= 1:
            return width, height
        return max(1, round(width * scale)), max(1, round(height * scale))

    def __str__(self) -> str:
        if self.percent is not None:
            return f"{self.percent:g}%"
        w = "" if self.width is None else str(self.width)
        h = "" if self.height is None else str(self.height)
        return f"{w}x{h}{self.flag}"
