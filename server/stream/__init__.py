"""
stream — abstract interface for the broker transport.

pub_sub_feed's Redis classes satisfy these protocols in production.
Use InMemoryStream from stream.stub for local development and tests.
"""

from stream.interface import StreamConsumer, StreamProducer

__all__ = ["StreamConsumer", "StreamProducer"]
