"""Parley: conversation pipeline for scripted and free-form counterparts."""

__version__ = "0.1.0"
