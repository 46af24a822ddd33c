from pathlib import Path
from typing import Union
import tomllib

import orjson

from route_metrics.common.models import Template
from route_metrics.errors import TemplateError


def load_template(path: Union[str, Path]) -> Template:
    """
    Load and validate a route-bucket template from a `.json` or `.toml` file.

    Every problem, including an unreadable file, raises TemplateError.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise TemplateError(f"cannot read template {path}", source=e) from e

    try:
        if path.suffix == ".toml":
            data = tomllib.loads(raw.decode("utf-8"))
        else:
            data = orjson.loads(raw)
    except (orjson.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise TemplateError(f"cannot parse template {path}", source=e) from e

    return Template.from_dict(data)
