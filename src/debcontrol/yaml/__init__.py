from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

MANIFEST_YAML = YAML()

__all__ = [
    "MANIFEST_YAML",
    "YAMLError",
]
