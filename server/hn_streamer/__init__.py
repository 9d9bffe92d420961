"""
HN Streamer Service

Polls Hacker News for stories and streams them through the broker.

Architecture:
    HN API -> hn_client (fetcher) -> pubsub (publisher) -> hn-stories
    hn-stories -> pubsub (consumer) -> analytics.WindowAggregator

Components:
    - hn_client: Listing/item API client, normalizer and polling fetcher
    - models: StoryEvent and domain extraction
    - pubsub: Story publisher/consumer over the stream interfaces
    - config: Environment-driven settings
"""
