"""
Configuration management for the loader service.
"""
from typing import List

from pydantic_settings import BaseSettings


class LoaderConfig(BaseSettings):
    """Configuration for loader service."""
    
    # Cassandra configuration
    cassandra_contact_points: List[str] = ["127.0.0.1"]
    cassandra_port: int = 9042
    cassandra_keyspace: str = "isd_weather_data"
    cassandra_table: str = "raw_weather_data"
    cassandra_local_dc: str = ""  # Empty = first contacted DC
    consistency: str = "QUORUM"
    
    # Kafka configuration
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_topic: str = "raw_weather_data"
    kafka_acks: int = 1
    
    # Submission control
    max_in_flight: int = 512
    request_timeout: float = 10.0  # Seconds per submission
    drain_timeout: float = 300.0  # Seconds to wait for pending acks at end
    
    # Reporting and error policy
    report_every: int = 1000
    on_malformed: str = "abort"  # 'abort' or 'skip'
    
    class Config:
        env_file = ".env"
        env_prefix = "ISD_"


def get_config() -> LoaderConfig:
    """Get loader configuration instance"""
    return LoaderConfig()
