"""
slotengine - appointment availability engine.

Computes which start times may be offered for a practitioner, date and
service from business hours, closures, existing bookings and the
advance-notice policy.
"""

__version__ = "0.1.0"
