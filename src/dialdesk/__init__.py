"""DialDesk: outbound calling CRM with lead scoring."""

__version__ = "0.1.0"
