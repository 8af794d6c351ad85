"""MDS Assist: position acquisition, relative bearings and field report composition."""

__version__ = "0.1.0"
