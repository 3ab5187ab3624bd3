"""Report template engine.

A ``TemplateSet`` is a sandboxed Jinja2 environment over a directory of
``*.j2`` text templates, extended with the function library of
``reports.functions`` and an ``include`` helper that renders another
template of the same set::

    {% for host in hosts %}
    {{ include("host", host) }}
    {% endfor %}

The set initializes lazily, at most once per instance: the first call to
``ensure_ready`` discovers and compiles every template under a lock, so
concurrent first requests do not race. A failed initialization is kept and
re-raised on every later call; constructing a new ``TemplateSet`` is the
only way to retry.

``include`` does not detect cycles. A template that includes itself, or a
set of templates including each other, recurses until Python's recursion
limit fails the render. Pass ``max_include_depth`` to fail earlier with a
clear error instead.
"""

import threading
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import BaseLoader, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound
from jinja2.sandbox import SandboxedEnvironment

from reports.functions import FILTERS, FUNCTIONS
from utils.errors import TemplateInitError, TemplateRenderError

logger = structlog.get_logger(__name__)

TEMPLATE_SUFFIX = ".j2"

_include_depth: ContextVar[int] = ContextVar("include_depth", default=0)


def template_file(name: str) -> str:
    """Map a report name (no extension) to its template file name."""
    return name + TEMPLATE_SUFFIX


class TemplateSet:
    """Named, lazily compiled collection of report templates.

    Attributes:
        name: Registry name of the set, used in log records.
        max_include_depth: Maximum nesting of ``include`` calls; 0 means
            unbounded.
    """

    def __init__(
        self,
        template_dir: Path | str | None = None,
        *,
        loader: Optional[BaseLoader] = None,
        name: str = "mops",
        max_include_depth: int = 0,
    ) -> None:
        if loader is None:
            if template_dir is None:
                raise ValueError("either template_dir or loader is required")
            loader = FileSystemLoader(str(template_dir))

        self.name = name
        self.max_include_depth = max_include_depth
        self._loader = loader
        self._lock = threading.Lock()
        self._env: Optional[SandboxedEnvironment] = None
        self._init_error: Optional[TemplateInitError] = None
        self._templates: list[str] = []

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @property
    def status(self) -> str:
        if self._env is not None:
            return "ok"
        if self._init_error is not None:
            return f"error: {self._init_error.message}"
        return "pending"

    @property
    def templates(self) -> list[str]:
        """Report names (file names without suffix) found at initialization."""
        return [t[: -len(TEMPLATE_SUFFIX)] for t in self._templates]

    def ensure_ready(self) -> None:
        """Initialize the set once.

        Raises:
            TemplateInitError: If discovery or compilation failed, now or on
                an earlier call.
        """
        if self._env is not None:
            return
        with self._lock:
            if self._env is not None:
                return
            if self._init_error is not None:
                raise self._init_error
            try:
                self._env = self._build()
            except TemplateInitError as exc:
                self._init_error = exc
                logger.error("template_init_failed", registry=self.name, error=exc.message)
                raise

    def _build(self) -> SandboxedEnvironment:
        env = SandboxedEnvironment(
            loader=self._loader,
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            auto_reload=False,
            cache_size=-1,
        )
        env.globals.update(FUNCTIONS)
        env.globals["include"] = self.include
        env.filters.update(FILTERS)

        try:
            found = env.list_templates(filter_func=lambda n: n.endswith(TEMPLATE_SUFFIX))
        except (OSError, TypeError) as exc:
            raise TemplateInitError(f"failed to list templates: {exc}") from exc

        if not found:
            raise TemplateInitError(f"no {TEMPLATE_SUFFIX} templates found for registry {self.name!r}")

        log = logger.bind(registry=self.name)
        for filename in found:
            log.info("template_found", file=filename)
            try:
                env.get_template(filename)
            except TemplateError as exc:
                raise TemplateInitError(
                    f"failed to parse template {filename!r}: {exc}",
                    details={"template": filename},
                ) from exc

        self._templates = list(found)
        return env

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, name: str, data: Any) -> str:
        """Render the report template ``name`` against ``data``.

        Mapping keys of ``data`` become template variables; the whole value is
        also available as ``data``.

        Raises:
            TemplateInitError: If the set cannot be initialized.
            TemplateRenderError: If the template is missing or fails.
        """
        self.ensure_ready()
        try:
            return self._execute(name, data)
        except TemplateRenderError as exc:
            if exc.template == name:
                raise
            raise TemplateRenderError(name, f"failed to execute template {name!r}: {exc.message}") from exc

    def include(self, name: str, data: Any = None) -> str:
        """Render another template of this set and return the text.

        Exposed to templates as ``include``. Recursion is bounded only by
        ``max_include_depth`` when it is set.
        """
        depth = _include_depth.get() + 1
        if self.max_include_depth and depth > self.max_include_depth:
            raise TemplateRenderError(
                name,
                f"include depth limit of {self.max_include_depth} exceeded at template {name!r}",
            )

        token = _include_depth.set(depth)
        try:
            return self._execute(name, data)
        finally:
            _include_depth.reset(token)

    def _execute(self, name: str, data: Any) -> str:
        if self._env is None:
            raise TemplateRenderError(name, f"template set {self.name!r} is not initialized")

        context: dict[str, Any] = dict(data) if isinstance(data, dict) else {}
        context["data"] = data

        try:
            template = self._env.get_template(template_file(name))
            return template.render(context)
        except TemplateNotFound:
            raise TemplateRenderError(name, f"failed to execute template {name!r}: template not found") from None
        except TemplateRenderError:
            raise
        except Exception as exc:
            raise TemplateRenderError(name, f"failed to execute template {name!r}: {exc}") from exc
