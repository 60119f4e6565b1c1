"""
Services
========

Application services that tie zones to the shadow transport.
"""

from .shadow_controller import ShadowController, ShadowTransport

__all__ = ["ShadowController", "ShadowTransport"]
