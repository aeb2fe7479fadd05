"""sup: a small uptime checker whose config file is kept encrypted at rest."""

__version__ = "0.2.0"
