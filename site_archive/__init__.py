"""site-archive: crawl a website and store a self-contained static mirror."""

__version__ = "1.0.0"
