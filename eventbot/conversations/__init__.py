from .base import Actor, Conversation, Flow, Incoming, Outcome
from .registry import FLOWS, dispatch, flow_for

__all__ = ["Actor", "Conversation", "FLOWS", "Flow", "Incoming", "Outcome", "dispatch", "flow_for"]
