from dataclasses import dataclass, field
from typing import Literal


type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
type Path = str
type Header = str
type Headers = frozenset[str]


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    """
    HTTP route. `headers` names the request headers handed to to_domain();
    status_code is the documented success status.
    """

    method: Method
    path: Path
    headers: Headers = field(default_factory=lambda: frozenset[str]())
    status_code: int = 200
