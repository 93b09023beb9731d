"""sbin - install a program's binary straight out of its Docker image."""

__version__ = "0.1.0"
