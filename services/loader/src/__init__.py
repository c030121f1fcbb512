"""
ISD Loader Service

Streams merged yearly archives into Cassandra (or Kafka) with
asynchronous, bounded submissions and live throughput metrics.
"""

__version__ = "0.1.0"
