"""
Hardware Package
================
GPIO output lines and the MQTT shadow transport.
"""
