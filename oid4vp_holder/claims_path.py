"""Claims path resolution for held credentials.

OpenID4VP 1.0 § 7: Claims Path Pointer
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#section-7
"""

from typing import Any, Mapping, Sequence, Union

from .models.credential import HeldCredential, MdocCredential, SdJwtVcCredential

ClaimsPathComponent = Union[str, int, None]


class _Absent:
    """Marker for a path that selects nothing."""

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


class ClaimsPathPointer:
    """A pointer into the JSON claims of a credential.

    Example:
    {
        "given_name": "Erika",
        "address": {
            "street_address": "Heidestrasse 17",
            "locality": "Koeln"
        },
        "degrees": [
            {"type": "Bachelor of Science", "university": "Uni Koeln"},
            {"type": "Master of Science", "university": "TU Berlin"}
        ],
        "nationalities": ["DE", "AT"]
    }

    - ["given_name"]: selects `"Erika"`.
    - ["address", "street_address"]: selects `"Heidestrasse 17"`.
    - ["degrees", null, "type"]: selects
      `["Bachelor of Science", "Master of Science"]`.
    - ["nationalities", 1]: selects `"AT"`.

    Any step that cannot be taken (a key on something that is not an object,
    an index out of range, a wildcard on something that is not an array)
    makes the whole pointer resolve to ``ABSENT``.
    """

    def __init__(self, path: Sequence[ClaimsPathComponent]):
        """Init the path pointer."""
        self.path = list(path)

    def resolve(self, claims: Mapping[str, Any]) -> Any:
        """Resolve the value selected by this pointer, or ``ABSENT``."""
        if not self.path or not isinstance(self.path[0], str):
            return ABSENT
        if not isinstance(claims, Mapping) or self.path[0] not in claims:
            return ABSENT
        return self._descend(claims[self.path[0]], self.path[1:])

    @classmethod
    def _descend(cls, current: Any, remaining: Sequence[ClaimsPathComponent]) -> Any:
        for index, component in enumerate(remaining):
            if component is None:
                if not _is_array(current):
                    return ABSENT
                rest = remaining[index + 1 :]
                selected = []
                for element in current:
                    value = cls._descend(element, rest)
                    if value is ABSENT:
                        return ABSENT
                    selected.append(value)
                return selected

            if isinstance(component, str):
                if not isinstance(current, Mapping) or component not in current:
                    return ABSENT
                current = current[component]
            elif isinstance(component, int) and not isinstance(component, bool):
                if not _is_array(current) or not 0 <= component < len(current):
                    return ABSENT
                current = current[component]
            else:
                return ABSENT
        return current


def resolve_json_path(
    claims: Mapping[str, Any], path: Sequence[ClaimsPathComponent]
) -> Any:
    """Resolve a claims path pointer against JSON claims."""
    return ClaimsPathPointer(path).resolve(claims)


def resolve_mdoc_path(
    namespaces: Mapping[str, Mapping[str, Any]],
    path: Sequence[ClaimsPathComponent],
) -> Any:
    """Resolve a ``[namespace, element_identifier]`` path in an mdoc.

    mdoc data elements are never descended into; any other path shape
    resolves to ``ABSENT``.
    """
    if len(path) != 2 or not all(isinstance(component, str) for component in path):
        return ABSENT
    namespace, element_identifier = path
    elements = namespaces.get(namespace)
    if elements is None or element_identifier not in elements:
        return ABSENT
    return elements[element_identifier]


def resolve_claim(
    credential: HeldCredential, path: Sequence[ClaimsPathComponent]
) -> Any:
    """Resolve ``path`` against the claims of a held credential."""
    if isinstance(credential, MdocCredential):
        return resolve_mdoc_path(credential.namespaces, path)
    if isinstance(credential, SdJwtVcCredential):
        return resolve_json_path(credential.claims, path)
    raise TypeError(f"Unsupported credential type {type(credential).__name__}")
