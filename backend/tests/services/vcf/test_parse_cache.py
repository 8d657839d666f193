"""Unit tests for the bounded parse cache."""

import pytest

from pgxrisk.services.vcf.cache import ParseCache
from pgxrisk.services.vcf.parser import ParsedVcf


def _parsed(tag):
    return ParsedVcf(metadata=(tag,), variants=())


class TestParseCache:
    """Test keying and oldest-first eviction."""

    def test_key_includes_gene_filter(self):
        """Same content against different gene panels gets different keys"""
        text = "##fileformat=VCFv4.2\n"

        assert ParseCache.make_key(text, ["CYP2D6"]) != ParseCache.make_key(text, ["CYP2C19"])
        assert ParseCache.make_key(text, ["CYP2D6"]) != ParseCache.make_key(text, None)

    def test_key_ignores_gene_order_and_case(self):
        """Gene lists are compared as sorted upper-case sets"""
        text = "##fileformat=VCFv4.2\n"

        assert ParseCache.make_key(text, ["TPMT", "cyp2d6"]) == ParseCache.make_key(text, ["CYP2D6", "TPMT"])

    def test_str_and_bytes_share_a_key(self):
        """The fingerprint is over the UTF-8 bytes"""
        assert ParseCache.make_key("abc") == ParseCache.make_key(b"abc")

    def test_get_and_put(self):
        """Stored entries are returned and hits/misses are counted"""
        cache = ParseCache(max_size=2)

        assert cache.get("a") is None
        cache.put("a", _parsed("a"))

        assert cache.get("a").metadata == ("a",)
        assert cache.hits == 1
        assert cache.misses == 1
        assert "a" in cache

    def test_oldest_entry_is_evicted(self):
        """The cache never grows past max_size"""
        cache = ParseCache(max_size=2)
        cache.put("a", _parsed("a"))
        cache.put("b", _parsed("b"))
        cache.put("c", _parsed("c"))

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") is not None
        assert cache.get("c") is not None

    def test_overwrite_does_not_evict(self):
        """Re-putting an existing key keeps the size unchanged"""
        cache = ParseCache(max_size=2)
        cache.put("a", _parsed("a"))
        cache.put("b", _parsed("b"))
        cache.put("a", _parsed("a2"))

        assert len(cache) == 2
        assert cache.get("a").metadata == ("a2",)

    def test_clear(self):
        """clear empties entries and counters"""
        cache = ParseCache()
        cache.put("a", _parsed("a"))
        cache.get("a")
        cache.clear()

        assert len(cache) == 0
        assert cache.hits == 0

    def test_size_must_be_positive(self):
        """A zero-sized cache is rejected"""
        with pytest.raises(ValueError):
            ParseCache(max_size=0)
