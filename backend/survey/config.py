from __future__ import annotations

import os
from pathlib import Path

from pydantic_settings import BaseSettings

_DEFAULT_DATA_DIR = Path(os.path.expanduser("~/.ai-survey/data"))


class Settings(BaseSettings):
    app_name: str = "AI Survey"
    debug: bool = False

    # Ratings, user indices and cached dataset live under here
    data_dir: Path = _DEFAULT_DATA_DIR

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = ["*"]
    frontend_dir: Path | None = None

    # Dataset
    dataset_repo: str = "Steelskull/pjmixers"
    hf_api_token: str = ""
    hf_base_url: str = "https://huggingface.co/datasets"
    dataset_remote_enabled: bool = True
    dataset_json_file: str = "pjmixers_dataset.json"
    dataset_parquet_file: str = "pjmixers_dataset.parquet"
    dataset_search_dirs: list[Path] = [Path.cwd(), _DEFAULT_DATA_DIR, Path("/")]
    dataset_fetch_timeout: float = 30.0
    cache_remote_dataset: bool = False

    # Survey
    session_limit: int = 50

    # Identity
    trust_forwarded_for: bool = False

    # Rate limiting
    rate_limit_requests: int = 120
    rate_limit_window: int = 60

    # Request body size limit (bytes)
    max_body_size: int = 10 * 1024 * 1024  # 10MB

    model_config = {"env_prefix": "SURVEY_"}


settings = Settings()
