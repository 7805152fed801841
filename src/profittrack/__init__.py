"""ProfitTrack conversational analytics for transport businesses."""

__version__ = "0.1.0"
