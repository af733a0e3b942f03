# ==============================================
# FileDriver
# ==============================================
#
# PURPOSE:
#   Read mapping descriptors from JSON files in a mapping directory.
#
# FILE STRUCTURE:
# ---------------
#   mappings/
#   ├── Animal.json     → {"class": "Animal", "mapped_superclass": true, ...}
#   ├── Dog.json        → {"class": "Dog", "extends": "Animal", ...}
#   └── vehicles.json   → [{"class": "Vehicle", ...}, {"class": "Car", ...}]
#
#   A file holds one descriptor (object) or several (array).
#   Files are read in name order; see descriptor.py for the shape.
#
# ERRORS:
# -------
#   - Missing directory or unreadable file → DriverError
#   - Invalid JSON / wrong top-level shape → InvalidDescriptorError
#
# ==============================================

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ormeta.drivers.descriptor import DescriptorDriver
from ormeta.mapping.exceptions import DriverError, InvalidDescriptorError
from ormeta.naming import UnderscoreNamingStrategy

logger = logging.getLogger(__name__)


class FileDriver(DescriptorDriver):
    """Mapping driver backed by a directory of JSON descriptor files."""

    def __init__(
        self,
        mapping_dir: Union[str, Path],
        naming: Optional[UnderscoreNamingStrategy] = None,
        file_extension: str = ".json",
    ):
        super().__init__(naming)
        self.mapping_dir = Path(mapping_dir)
        self.file_extension = file_extension

    def get_mapping_files(self) -> List[Path]:
        if not self.mapping_dir.is_dir():
            raise DriverError(f"Mapping directory {self.mapping_dir} does not exist")
        return sorted(self.mapping_dir.glob(f"*{self.file_extension}"))

    def _fetch_descriptors(self) -> List[Dict[str, Any]]:
        descriptors: List[Dict[str, Any]] = []

        for path in self.get_mapping_files():
            try:
                with open(path, 'r', encoding="utf-8") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidDescriptorError(f"Invalid JSON in {path}: {e}") from e
            except OSError as e:
                raise DriverError(f"Cannot read mapping file {path}: {e}") from e

            if isinstance(data, dict):
                descriptors.append(data)
            elif isinstance(data, list):
                descriptors.extend(data)
            else:
                raise InvalidDescriptorError(f"{path} must contain an object or an array of objects")

            logger.debug("Read mapping file %s", path)

        return descriptors
