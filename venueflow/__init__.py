"""VenueFlow: institutional event approvals with venue and resource admission control."""

__version__ = "1.0.0"
