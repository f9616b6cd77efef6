"""Switchboard — integration gateway for the agent dashboard."""

__version__ = "1.0.0"
