"""seo-pilot: organic SEO promotion from the command line."""

__version__ = "0.1.0"
