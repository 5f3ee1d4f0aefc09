"""
Ambulance dispatch core

Candidate selection, hospital destination scoring and the per-incident
lifecycle simulation that drives an ambulance from dispatch to hand-over.
"""

__version__ = "1.0.0"
