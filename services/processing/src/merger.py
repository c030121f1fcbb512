"""
Stream merger

Reads every per-station ISD-Lite file of one year, parses each line and
appends the normalized CSV rendering to a single gzipped archive.
"""
import gzip
import logging
import zlib
from contextlib import ExitStack
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from .errors import MalformedFileNameError, ParseError
from .parser import parse_line
from .records import render_merged
from .stations import resolve_station_id

logger = logging.getLogger(__name__)


# Per-file failures that abort the offending file only
FILE_ERRORS = (
    MalformedFileNameError,
    OSError,
    EOFError,
    zlib.error,
    UnicodeDecodeError,
)


@dataclass
class MergeStats:
    """Outcome of merging one directory"""
    
    output_path: str
    file_count: int = 0
    files_failed: int = 0
    lines_written: int = 0
    lines_skipped: int = 0
    failed_files: List[str] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, any]:
        return asdict(self)


def _same_file(a: Path, b: Path) -> bool:
    return a.resolve() == b.resolve()


class StreamMerger:
    """Merge many gzipped station files into one gzipped CSV archive"""
    
    def __init__(
        self,
        encoding: str = "utf-8",
        compresslevel: int = 9,
        progress_every: int = 100
    ):
        """
        Initialize merger
        
        Args:
            encoding: Text encoding of the input files
            compresslevel: gzip level for the archive
            progress_every: Log a progress marker every N files
        """
        self.encoding = encoding
        self.compresslevel = compresslevel
        self.progress_every = progress_every
    
    def merge(
        self,
        input_files: Iterable[Union[str, Path]],
        output_path: Union[str, Path]
    ) -> MergeStats:
        """
        Merge input files into the output archive
        
        The archive is reopened in append mode for each input file, so a
        crash mid-directory keeps every file written before it. The archive
        is never created when no input produced a line.
        
        Args:
            input_files: Station files, processed in the given order
            output_path: Target .csv.gz archive
        
        Returns:
            MergeStats; file_count counts every file attempted
        """
        output = Path(output_path)
        stats = MergeStats(output_path=str(output))
        
        logger.info(f"Merging into {output}")
        
        for input_file in input_files:
            path = Path(input_file)
            
            if _same_file(path, output):
                logger.debug(f"Skipping output archive {path}")
                continue
            
            stats.file_count += 1
            
            try:
                written, skipped = self._merge_file(path, output)
            except FILE_ERRORS as e:
                stats.files_failed += 1
                stats.failed_files.append(str(path))
                logger.error(f"Error while reading file {path}: {e}")
            else:
                stats.lines_written += written
                stats.lines_skipped += skipped
            
            if stats.file_count % self.progress_every == 0:
                logger.info(f"Progress: {stats.file_count} files merged into {output.name}")
        
        logger.info(
            f"Total files: {stats.file_count} "
            f"({stats.files_failed} failed, {stats.lines_written} lines) -> {output}"
        )
        return stats
    
    def _merge_file(self, path: Path, output: Path) -> Tuple[int, int]:
        """Append one station file to the archive, returns (written, skipped)"""
        station_id = resolve_station_id(path)
        written = 0
        skipped = 0
        
        with ExitStack() as stack:
            reader = stack.enter_context(
                gzip.open(path, "rt", encoding=self.encoding)
            )
            writer = None
            
            for line_number, line in enumerate(reader, start=1):
                if not line.strip():
                    continue
                
                try:
                    parsed = parse_line(line)
                except ParseError as e:
                    skipped += 1
                    logger.warning(f"Skipping {path}:{line_number}: {e}")
                    continue
                
                # Opened on the first good line
                if writer is None:
                    writer = stack.enter_context(
                        gzip.open(
                            output,
                            "at",
                            encoding="utf-8",
                            compresslevel=self.compresslevel
                        )
                    )
                
                writer.write(render_merged(station_id, parsed.observation) + "\n")
                written += 1
        
        if skipped:
            logger.warning(f"{path}: skipped {skipped} malformed lines")
        
        return written, skipped


def create_merger(
    encoding: str = "utf-8",
    compresslevel: int = 9,
    progress_every: int = 100
) -> StreamMerger:
    """
    Factory function to create a stream merger
    
    Args:
        encoding: Input text encoding
        compresslevel: gzip level for the archive
        progress_every: Progress marker interval in files
    
    Returns:
        StreamMerger instance
    """
    return StreamMerger(encoding, compresslevel, progress_every)
