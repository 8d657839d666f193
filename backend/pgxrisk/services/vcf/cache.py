"""
Bounded parse cache keyed by content fingerprint and gene filter.

The same VCF text parsed against different gene panels yields different
records, so the key always includes the sorted target genes.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional, Union

from pgxrisk.core.cache import BoundedCache

from .parser import ParsedVcf


class ParseCache(BoundedCache[ParsedVcf]):
    """Cached ParsedVcf values are immutable and safe to hand to several runs."""

    name = "Parse cache"

    @staticmethod
    def make_key(content: Union[str, bytes], target_genes: Optional[Iterable[str]] = None) -> str:
        if isinstance(content, str):
            content = content.encode("utf-8")
        digest = hashlib.sha256(content).hexdigest()
        genes = "*" if target_genes is None else ",".join(sorted({g.upper() for g in target_genes}))
        return f"{digest}:{genes}"
