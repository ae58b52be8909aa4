"""Account and credential backend for the contentdesk CMS."""

__version__ = "0.1.0"
