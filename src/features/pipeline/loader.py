"""Loading pipeline options from YAML files."""

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from src.features.pipeline.options import PipelineOptions


logger = structlog.get_logger()


class OptionsValidationError(Exception):
    """Raised when a pipeline options file is invalid."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


def load_pipeline_options(file_path: Path) -> PipelineOptions:
    """Load pipeline options from a YAML file.

    Both snake_case and camelCase keys are accepted, e.g.::

        noRetryPolicy: false
        requestTimeout: 5000
        deserializationContentTypes:
          json: [application/json]

    Args:
        file_path: Path to the YAML file.

    Returns:
        Validated options.

    Raises:
        FileNotFoundError: If the file does not exist.
        OptionsValidationError: If the content is not valid options.
    """
    log = logger.bind(component="config", file_path=str(file_path))

    content = file_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        errors = [{"loc": "", "msg": f"Invalid YAML: {e}", "type": "yaml_error"}]
        log.warning("options_load_failed", error_count=1)
        raise OptionsValidationError(errors, str(file_path)) from e

    if not isinstance(data, dict):
        errors = [{"loc": "", "msg": "Top level must be a mapping", "type": "type"}]
        log.warning("options_load_failed", error_count=1)
        raise OptionsValidationError(errors, str(file_path))

    try:
        options = PipelineOptions.model_validate(data)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(part) for part in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        log.warning("options_load_failed", error_count=len(errors))
        raise OptionsValidationError(errors, str(file_path)) from e

    log.info("options_loaded", no_retry_policy=options.no_retry_policy)
    return options
