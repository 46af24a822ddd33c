import re
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError

from route_metrics.errors import TemplateError

TEMPLATE_VERSION = "1.0.0"


class TemplateRoute(BaseModel):
    """One bucket rule: routes with `method` whose path equals `pattern` or matches `regex`."""
    name: str
    method: str
    pattern: Optional[str] = None
    regex: Optional[re.Pattern] = None

    def matches(self, method: str, path: str) -> bool:
        if method != self.method:
            return False
        if self.pattern:
            return path == self.pattern
        return self.regex.search(path) is not None


class Template(BaseModel):
    version: str
    routes: List[TemplateRoute]

    @classmethod
    def from_dict(cls, data: Any) -> "Template":
        """
        Validate a template document. Raises TemplateError describing the
        first problem found.
        """
        if not isinstance(data, dict):
            raise TemplateError("template must be an object")

        version = data.get("version")
        if version != TEMPLATE_VERSION:
            raise TemplateError(f"unknown template version {version}")

        raw_routes = data.get("routes")
        if not isinstance(raw_routes, list):
            raise TemplateError("template routes must be an array")

        routes = []
        for r in raw_routes:
            if not isinstance(r, dict) or not r.get("name") or not r.get("method"):
                raise TemplateError("template routes must have a name and method property")
            name = r["name"]
            pattern = r.get("pattern")
            regex = r.get("regex")
            if bool(pattern) == bool(regex):
                raise TemplateError(f"route {name} must have either pattern or regex")

            if regex is not None and not isinstance(regex, re.Pattern):
                try:
                    regex = re.compile(regex)
                except (re.error, TypeError) as e:
                    raise TemplateError(f"route {name} has an invalid regex", source=e) from e

            try:
                routes.append(
                    TemplateRoute(name=str(name), method=str(r["method"]), pattern=pattern, regex=regex)
                )
            except ValidationError as e:
                raise TemplateError(f"route {name} is invalid", source=e) from e

        return cls(version=version, routes=routes)
