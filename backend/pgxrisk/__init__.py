"""pgxrisk - pharmacogenomic risk classification from VCF variants."""

__version__ = "1.0.0"
