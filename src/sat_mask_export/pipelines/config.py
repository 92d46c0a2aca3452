from dataclasses import dataclass
from typing import Optional, Union
from pathlib import Path

from sat_mask_export.configs.constants import OutputFormat

@dataclass(frozen=True)
class ExportConfig:
    input_path: Union[str, Path]
    output_path: Union[str, Path]
    expression: str
    output_format: OutputFormat = OutputFormat.RAW
    log_every: Optional[int] = None  # log progress every N rows; None = start/end only

def init_export_config(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    expression: str,
    output_format: Union[str, OutputFormat] = OutputFormat.RAW,
    log_every: Optional[int] = None,
) -> ExportConfig:
    """
    Helper function to initialize ExportConfig
    """
    return ExportConfig(
        input_path=input_path,
        output_path=output_path,
        expression=expression,
        output_format=OutputFormat(output_format),
        log_every=log_every,
    )
