"""
WhatsApp Handler Package
------------------------
Inbound reply interpretation for WhatsApp Padel Sync.
"""

from .interpreter import InboundMessage, Interpretation, classify_text, decision_from_button, interpret_payload
from .router import find_player_by_phone
