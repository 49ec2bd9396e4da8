"""Periodic content block synchronisation from Salesforce Marketing Cloud."""

__version__ = "0.1.0"
