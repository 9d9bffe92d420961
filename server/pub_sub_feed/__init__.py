"""
pub_sub_feed — Generic Redis Streams primitives.

Public API:
    FeedPublisher  — append dicts to named Redis streams
    FeedSubscriber — read a stream through a consumer group, pull/ack one at a time
    FeedMessage    — a decoded entry awaiting acknowledgement
    serialize      — encode (channel, dict, key) -> JSON string
    deserialize    — decode JSON string -> (channel, dict)
"""
from .publisher import FeedPublisher, PublisherError
from .subscriber import FeedMessage, FeedSubscriber, SubscriberError
from .serializer import SerializationError, serialize, deserialize

__all__ = [
    "FeedPublisher",
    "PublisherError",
    "FeedMessage",
    "FeedSubscriber",
    "SubscriberError",
    "SerializationError",
    "serialize",
    "deserialize",
]
