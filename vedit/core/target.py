"""
Edit targets: the media an operation is applied to.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from vedit.core.operation import ResourceType


@dataclass(frozen=True)
class EditTarget:
    """
    Media an operation runs against.

    Attributes:
        source: Local path or URL read by the authoritative renderer
        public_id: Resource id on the preview service
        output: Where the authoritative renderer writes its result
        resource_type: Video or image
        duration: Source duration in seconds, when known
        has_audio: Whether the source has an audio stream, when known
    """
    source: Optional[str] = None
    public_id: Optional[str] = None
    output: Optional[Path] = None
    resource_type: ResourceType = ResourceType.VIDEO
    duration: Optional[float] = None
    has_audio: Optional[bool] = None

    @property
    def is_local(self) -> bool:
        return bool(self.source) and "://" not in self.source and Path(self.source).exists()

    def output_for(self, index: int) -> Optional[Path]:
        """Intermediate output path for the index-th operation of a sequence."""
        if self.output is None:
            return None
        output = Path(self.output)
        return output.with_name(f"{output.stem}.step{index:02d}{output.suffix}")

    def advance(self, rendered: Path) -> EditTarget:
        """Target for the next operation after this one rendered to a new file."""
        return replace(self, source=str(rendered), duration=None, has_audio=None)
