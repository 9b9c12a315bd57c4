# dropkeys/storage/dto.py
from pydantic import BaseModel
from typing import List, Optional


class Metadata(BaseModel):
    """
    Provider-neutral description of a single remote path.
    Optional fields default to "not a directory" and "not deleted";
    `contents` is None when the provider returned no listing at all.
    """

    path: str
    is_dir: bool = False
    modified: Optional[str] = None  # RFC 2822, e.g. "Tue, 19 Jul 2011 21:55:38 +0000"
    is_deleted: bool = False
    size: int = 0
    rev: Optional[str] = None
    contents: Optional[List["Metadata"]] = None


class SharedLink(BaseModel):
    """A shareable link returned by the provider."""

    url: str
    expires: Optional[str] = None


Metadata.model_rebuild()
