"""
Session Gateway

OpenAI-compatible front for an upstream chat service that speaks a two-step session protocol.
"""

__version__ = "0.1.0"
