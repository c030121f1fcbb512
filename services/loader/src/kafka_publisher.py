"""Kafka publisher: alternative sink for merged archive lines."""
import logging
from concurrent.futures import Future
from typing import Optional, Union

from kafka import KafkaProducer
from kafka.errors import KafkaError, NoBrokersAvailable

from processing.records import LoadRecord

from .config import LoaderConfig
from .errors import ResourceUnavailableError

logger = logging.getLogger(__name__)


class KafkaSink:
    """Publishes (key, raw line) messages to a topic."""

    def __init__(self, config: LoaderConfig, producer: Optional[KafkaProducer] = None):
        """Initialize publisher.

        Args:
            config: Loader configuration
            producer: Pre-built producer (built from config when omitted)
        """
        self.config = config
        self.producer = producer

    def connect(self) -> "KafkaSink":
        if self.producer is None:
            try:
                self.producer = KafkaProducer(
                    bootstrap_servers=self.config.kafka_bootstrap_servers,
                    acks=self.config.kafka_acks,
                    key_serializer=str.encode,
                    value_serializer=str.encode,
                    request_timeout_ms=int(self.config.request_timeout * 1000),
                )
            except NoBrokersAvailable as e:
                logger.error(f"No Kafka brokers at {self.config.kafka_bootstrap_servers}")
                raise ResourceUnavailableError(f"Kafka unreachable: {e}") from e

        logger.info(f"Publishing to topic {self.config.kafka_topic}")
        return self

    def publish(self, key: str, raw_line: str):
        """Send one message, returns the producer's send future."""
        return self.producer.send(self.config.kafka_topic, key=key, value=raw_line)

    def submit(self, record: LoadRecord, consistency: Union[str, int, None] = None) -> Future:
        """Publish a record keyed by its first five CSV fields.

        Consistency does not apply to the queue and is ignored.
        """
        if self.producer is None:
            raise RuntimeError("KafkaSink is not connected")

        future = Future()
        try:
            send_future = self.publish(record.key, record.raw)
        except KafkaError as e:
            future.set_exception(e)
            return future

        send_future.add_callback(future.set_result)
        send_future.add_errback(future.set_exception)
        return future

    def flush(self):
        self.producer.flush(timeout=self.config.drain_timeout)

    def close(self):
        if self.producer is not None:
            self.producer.close()
            logger.info("Kafka producer closed")

    def __enter__(self) -> "KafkaSink":
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()
