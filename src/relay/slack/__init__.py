"""Slack Web API integration."""

from relay.slack.client import SlackClient
from relay.slack.types import Channel, SendResult, SlackAPI, TokenGrant

__all__ = [
    "Channel",
    "SendResult",
    "SlackAPI",
    "SlackClient",
    "TokenGrant",
]
