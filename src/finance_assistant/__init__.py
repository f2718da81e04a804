"""
Finance Assistant - Source Package

The conversational core of a personal finance app: it gathers a user's
financial state from the backend into a textual context for an AI
assistant, and turns receipt photos and voice notes into transaction
records through a generative-AI backend.

DESIGN PRINCIPLES:
1. Upstream sources are unreliable - degrade, don't crash
2. Canonical types are always well-formed - defaults are filled at the seam
3. AI replies are untrusted text - parse defensively, fail visibly
4. Collaborators are injected, never global
"""

__version__ = "1.0.0"
__author__ = "Finance Assistant Team"
