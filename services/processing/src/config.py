"""
Configuration for processing service
"""
from pydantic_settings import BaseSettings


class ProcessingConfig(BaseSettings):
    """Processing service configuration"""
    
    # Input discovery
    archive_glob: str = "*.gz"
    input_encoding: str = "utf-8"
    
    # Output naming
    output_suffix: str = ".csv.gz"
    compresslevel: int = 9
    
    # Progress reporting
    progress_every: int = 100  # Log a progress marker every N files
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "ISD_"


def get_config() -> ProcessingConfig:
    """Get processing configuration instance"""
    return ProcessingConfig()
