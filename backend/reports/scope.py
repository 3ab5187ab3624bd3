"""Report scope: the zone/cluster/host filter of a report request."""

from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict
from starlette.requests import Request

SCOPE_FIELDS = ("zone", "cluster", "host")


class ReportScope(BaseModel):
    """Filter applied to the backend report query.

    Every field is optional and defaults to the empty string, which means
    "not filtered". Two scopes with the same fields are equal.

    Attributes:
        zone: Zone name.
        cluster: Cluster name.
        host: Host name.
    """

    model_config = ConfigDict(frozen=True)

    zone: str = ""
    cluster: str = ""
    host: str = ""

    @classmethod
    def from_request(cls, request: Request) -> "ReportScope":
        """Read ``zone``, ``cluster`` and ``host`` from the request query string.

        Missing parameters stay empty; any other parameter is ignored.
        """
        params = request.query_params
        return cls(**{name: params.get(name, "") for name in SCOPE_FIELDS})

    def params(self) -> dict[str, str]:
        """Return the non-empty fields in zone, cluster, host order."""
        return {name: getattr(self, name) for name in SCOPE_FIELDS if getattr(self, name)}

    def query(self) -> str:
        """Return the scope as a ``?k=v&...`` query string, or ``""`` when unfiltered."""
        params = self.params()
        if not params:
            return ""
        return "?" + urlencode(params)
