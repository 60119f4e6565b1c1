"""
shadowsync
==========

Keeps GPIO-driven zones (valves, relays) in step with remote device shadows
delivered over MQTT.
"""

__version__ = "1.0.0"
