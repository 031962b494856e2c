"""Configuration loader and validation for ledger reconciliation settings."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional
import logging
import os

import httpx
import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class LLMConfig(BaseModel):
    """Configuration for the hosted generation backend."""

    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.0
    timeout_seconds: float = 600.0


class PipelineConfig(BaseModel):
    """Configuration for the streaming reconciliation pipeline."""

    candidate_policy: Literal["last", "first"] = "last"
    skip_blank_chunks: bool = True
    party_a_label: str = "Party A"
    party_b_label: str = "Party B"


class DocumentsConfig(BaseModel):
    """Configuration for ledger document loading."""

    max_bytes: int = 20 * 1024 * 1024


class ExportSheetNames(BaseModel):
    """Tab names of the exported report."""

    summary: str = "Summary"
    matches: str = "Matches"
    party_a: str = "Party A Discrepancies"
    party_b: str = "Party B Discrepancies"
    progress_log: str = "Progress Log"
    rates: str = "Rates"


class ExportConfig(BaseModel):
    """Configuration for the spreadsheet export."""

    title_template: str = "Ledger Reconciliation {date} {time}"
    rates_title: str = "Rate Record Live Data"
    currency_pattern: str = "[$₹]#,##0.00"
    sheets_api_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    timeout_seconds: float = 60.0
    sheet_names: ExportSheetNames = Field(default_factory=ExportSheetNames)


class OutputConfig(BaseModel):
    """Configuration for local Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for ledger reconciliation."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


@dataclass
class ReconContext:
    """
    Explicitly passed handles for one process.

    Carries the configuration, the model API key and an optional shared
    HTTP client. Handed to the pipeline and exporters instead of reading
    module-level client singletons.
    """

    config: ReconConfig = field(default_factory=ReconConfig)
    api_key: Optional[str] = None
    http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(
        cls, config: ReconConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> "ReconContext":
        api_key = config.llm.api_key or os.environ.get("OPENAI_API_KEY")
        return cls(config=config, api_key=api_key, http_client=http_client)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return ReconConfig().model_dump(exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Environment variables LEDGER_RECON_MODEL and LEDGER_RECON_BASE_URL
    override the model settings of the file.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    model = os.environ.get("LEDGER_RECON_MODEL")
    if model:
        config_dict["llm"]["model"] = model.strip()
    base_url = os.environ.get("LEDGER_RECON_BASE_URL")
    if base_url:
        config_dict["llm"]["base_url"] = base_url.strip()

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()
    # Keep secrets out of generated files
    config_dict["llm"].pop("api_key", None)

    yaml_content = """# Ledger reconciliation configuration
# Generated configuration file - customize as needed
# The model API key is read from OPENAI_API_KEY.

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
