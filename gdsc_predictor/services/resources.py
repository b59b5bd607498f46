import json
import logging
from pathlib import Path
from typing import Any, Union

from ..errors import ResourceNotFound

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Encoding maps exported at training time
ONEHOT_MAPPING = "onehot_mapping_robust.json"
FREQUENCY_MAPS = "frequency_encoding_maps_robust.json"
TARGET_MAPS = "target_encoding_maps_robust.json"


def resolve_resource(resources_dir: PathLike, name: str) -> Path:
    """Return the absolute path of a static artifact or raise ResourceNotFound."""
    path = Path(resources_dir).resolve() / name
    if not path.is_file():
        raise ResourceNotFound(name, resources_dir)
    return path


def find_resource(resources_dir: PathLike, *names: str) -> Path:
    """Return the first artifact of `names` that exists, in preference order."""
    for name in names:
        path = Path(resources_dir).resolve() / name
        if path.is_file():
            return path
    raise ResourceNotFound(" | ".join(names), resources_dir)


def read_json_resource(resources_dir: PathLike, name: str) -> Any:
    path = resolve_resource(resources_dir, name)
    logger.debug("Reading %s", path)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
