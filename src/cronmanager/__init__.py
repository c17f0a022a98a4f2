"""Cron Manager - manage your crontab with names, tags and metadata."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("cron-manager")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
