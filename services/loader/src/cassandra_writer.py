"""
Cassandra writer for raw weather observations.
"""
import logging
from concurrent.futures import Future
from typing import Optional, Union

from cassandra import ConsistencyLevel
from cassandra.cluster import (
    EXEC_PROFILE_DEFAULT,
    Cluster,
    ExecutionProfile,
    NoHostAvailable,
)
from cassandra.policies import DCAwareRoundRobinPolicy, RetryPolicy, TokenAwarePolicy

from processing.records import LoadRecord

from .config import LoaderConfig
from .errors import ResourceUnavailableError

logger = logging.getLogger(__name__)


# Table columns in merged CSV order
INSERT_COLUMNS = (
    "wsid",
    "year",
    "month",
    "day",
    "hour",
    "temperature",
    "dewpoint",
    "pressure",
    "wind_direction",
    "wind_speed",
    "sky_condition",
    "one_hour_precip",
    "six_hour_precip",
)


def build_insert(table: str) -> str:
    """Parameterized insert with one positional marker per column."""
    columns = ", ".join(INSERT_COLUMNS)
    markers = ",".join("?" * len(INSERT_COLUMNS))
    return f"INSERT INTO {table} ({columns}) VALUES ({markers})"


def consistency_level(level: Union[str, int]) -> int:
    """Resolve a consistency level name such as 'QUORUM'."""
    if isinstance(level, int):
        return level
    try:
        return ConsistencyLevel.name_to_value[level.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown consistency level: {level}. "
            f"Must be one of {sorted(ConsistencyLevel.name_to_value)}"
        ) from None


class CassandraSink:
    """Asynchronous insert path into the raw observations table."""
    
    def __init__(self, config: LoaderConfig, cluster: Optional[Cluster] = None):
        """
        Initialize writer.
        
        Args:
            config: Loader configuration
            cluster: Pre-built cluster (built from config when omitted)
        """
        self.config = config
        self.cluster = cluster
        self.session = None
        self.insert_statement = None
    
    def _build_cluster(self) -> Cluster:
        profile = ExecutionProfile(
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=self.config.cassandra_local_dc)
            ),
            retry_policy=RetryPolicy(),
            consistency_level=consistency_level(self.config.consistency),
            request_timeout=self.config.request_timeout,
        )
        return Cluster(
            contact_points=self.config.cassandra_contact_points,
            port=self.config.cassandra_port,
            execution_profiles={EXEC_PROFILE_DEFAULT: profile},
        )
    
    def connect(self) -> "CassandraSink":
        """Connect to the keyspace and prepare the insert statement."""
        if self.cluster is None:
            self.cluster = self._build_cluster()
        
        try:
            self.session = self.cluster.connect(self.config.cassandra_keyspace)
        except NoHostAvailable as e:
            logger.error(f"Cassandra unreachable at {self.config.cassandra_contact_points}: {e}")
            raise ResourceUnavailableError(f"Cassandra unreachable: {e}") from e
        
        self.insert_statement = self.session.prepare(
            build_insert(self.config.cassandra_table)
        )
        logger.info(
            f"Connected to keyspace {self.config.cassandra_keyspace}, "
            f"table {self.config.cassandra_table}"
        )
        return self
    
    def submit(self, record: LoadRecord, consistency: Union[str, int]) -> Future:
        """
        Issue one insert without waiting for it.
        
        Args:
            record: Typed record to insert
            consistency: Consistency level for this write
        
        Returns:
            Future resolved when the cluster acknowledges the write
        """
        if self.session is None:
            raise RuntimeError("CassandraSink is not connected")
        
        bound = self.insert_statement.bind(record.values())
        bound.consistency_level = consistency_level(consistency)
        
        future = Future()
        try:
            response = self.session.execute_async(
                bound, timeout=self.config.request_timeout
            )
        except NoHostAvailable as e:
            raise ResourceUnavailableError(f"Cassandra unreachable: {e}") from e
        
        def on_error(exc):
            if isinstance(exc, NoHostAvailable):
                exc = ResourceUnavailableError(f"Cassandra unreachable: {exc}")
            future.set_exception(exc)
        
        response.add_callbacks(callback=future.set_result, errback=on_error)
        return future
    
    def flush(self):
        """Writes are not buffered client-side."""
    
    def close(self):
        if self.cluster is not None:
            self.cluster.shutdown()
            logger.info("Cassandra connection closed")
    
    def __enter__(self) -> "CassandraSink":
        return self.connect()
    
    def __exit__(self, exc_type, exc, tb):
        self.close()
