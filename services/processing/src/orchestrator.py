"""
Processing orchestrator

Main entry point for the transform stage.
Walks year directories and merges each one into a yearly archive.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import ProcessingConfig, get_config
from .merger import create_merger

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def list_directories(directory: Union[str, Path]) -> List[Path]:
    """Immediate subdirectories of a directory, sorted by name"""
    return sorted(p for p in Path(directory).iterdir() if p.is_dir())


def list_files(directory: Union[str, Path], pattern: str = "*.gz") -> List[Path]:
    """Files matching a glob directly inside a directory, sorted by name"""
    return sorted(p for p in Path(directory).glob(pattern) if p.is_file())


class DirectoryPipeline:
    """Runs the stream merger once per year directory"""
    
    def __init__(self, config: Optional[ProcessingConfig] = None):
        """
        Initialize pipeline
        
        Args:
            config: Processing configuration (loaded from env if omitted)
        """
        self.config = config or get_config()
        self.merger = create_merger(
            encoding=self.config.input_encoding,
            compresslevel=self.config.compresslevel,
            progress_every=self.config.progress_every
        )
    
    def output_path_for(
        self,
        year_directory: Path,
        output_directory: Optional[Union[str, Path]] = None
    ) -> Path:
        """Archive path: <output or year dir>/<year dir name>.csv.gz"""
        target = Path(output_directory) if output_directory else year_directory
        return target / f"{year_directory.name}{self.config.output_suffix}"
    
    def run(
        self,
        data_directory: Union[str, Path],
        output_directory: Optional[Union[str, Path]] = None
    ) -> Dict[str, any]:
        """
        Merge every year directory under data_directory
        
        Args:
            data_directory: Directory holding one subdirectory per year
            output_directory: Where archives go (default: each year directory)
        
        Returns:
            Summary with per-directory merge statistics
        """
        data_directory = Path(data_directory)
        if not data_directory.is_dir():
            raise FileNotFoundError(f"Data directory not found: {data_directory}")
        
        if output_directory:
            Path(output_directory).mkdir(parents=True, exist_ok=True)
        
        start_time = datetime.utcnow()
        directories = list_directories(data_directory)
        logger.info(f"Processing {len(directories)} directories under {data_directory}")
        
        results = {}
        for year_directory in directories:
            output_path = self.output_path_for(year_directory, output_directory)
            logger.info(f"From directory: {year_directory}")
            logger.info(f"To file: {output_path}")
            
            files = list_files(year_directory, self.config.archive_glob)
            stats = self.merger.merge(files, output_path)
            results[year_directory.name] = stats.to_dict()
        
        end_time = datetime.utcnow()
        duration = (end_time - start_time).total_seconds()
        
        summary = {
            "data_directory": str(data_directory),
            "output_directory": str(output_directory) if output_directory else None,
            "total_directories": len(directories),
            "total_files": sum(r["file_count"] for r in results.values()),
            "failed_files": sum(r["files_failed"] for r in results.values()),
            "total_lines": sum(r["lines_written"] for r in results.values()),
            "directory_results": results,
            "processing_time_seconds": duration,
            "started_at": start_time.isoformat(),
            "completed_at": end_time.isoformat(),
            "status": "success"
        }
        
        logger.info(
            f"Processing complete in {duration:.2f}s: "
            f"{summary['total_files']} files, {summary['total_lines']} lines"
        )
        return summary


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI"""
    import argparse
    import json
    
    parser = argparse.ArgumentParser(
        prog="isd-process",
        description="Merge ISD-Lite station files into yearly CSV archives"
    )
    parser.add_argument(
        "data_directory",
        help="Directory with one subdirectory of station files per year"
    )
    parser.add_argument(
        "output_directory",
        nargs="?",
        default=None,
        help="Where to write archives (default: each year directory)"
    )
    
    args = parser.parse_args(argv)
    
    try:
        results = DirectoryPipeline().run(args.data_directory, args.output_directory)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    
    print(json.dumps(results, indent=2, default=str))
    sys.exit(0)


if __name__ == "__main__":
    main()
