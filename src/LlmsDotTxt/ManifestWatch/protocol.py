"""Query/command protocol spoken with the popup, reader, and options surfaces.

Requests are JSON objects with a ``type`` field. Both the hyphenated names
(``get-tab-data``) and the camelCase names used by the extension pages
(``getTabData``) are accepted.

================  ===========================  ==============================================
Request           Input                        Response
================  ===========================  ==============================================
get-tab-data      ``tabId``                    ``{found: false}`` or ``{found: true, url, content, domain}``
get-history       (none)                       list of ``{url, domain, content}``
get-settings      (none)                       ``{historyCount, renderMarkdown, showFrontmatter}``
save-settings     ``settings``                 ``{success: true}``
clear-history     (none)                       ``{success: true}``
================  ===========================  ==============================================
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from LlmsDotTxt.ManifestWatch.errors import UnknownRequestError
from LlmsDotTxt.ManifestWatch.models import ManifestRecord

ACK: Dict[str, bool] = {"success": True}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class RequestType(Enum):
    GET_TAB_DATA = "get-tab-data"
    GET_HISTORY = "get-history"
    GET_SETTINGS = "get-settings"
    SAVE_SETTINGS = "save-settings"
    CLEAR_HISTORY = "clear-history"

    @classmethod
    def from_wire(cls, value: Union[str, "RequestType", None]) -> "RequestType":
        """Return the member for ``value``; raise :class:`UnknownRequestError` otherwise."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownRequestError(value)
        text = _CAMEL_BOUNDARY.sub("-", value.strip()).replace("_", "-").lower()
        for member in cls:
            if member.value == text:
                return member
        raise UnknownRequestError(value)


def tab_data_response(record: Optional[ManifestRecord]) -> Dict[str, Any]:
    if record is None:
        return {"found": False}
    return {
        "found": True,
        "url": record.url,
        "content": record.content,
        "domain": record.domain,
    }


def history_response(records: Iterable[ManifestRecord]) -> List[Dict[str, str]]:
    return [record.to_dict() for record in records]


__all__ = ("ACK", "RequestType", "tab_data_response", "history_response")
