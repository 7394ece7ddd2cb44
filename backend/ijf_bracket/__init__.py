"""IJF single-elimination brackets with repechage, for judo tournament software."""

__version__ = "0.1.0"
