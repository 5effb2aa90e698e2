from typing import Any, Dict, List

# Service index @type values, newest first.
_RESOURCE_MAP = {
    "search": [
        "SearchQueryService/3.5.0",
        "SearchQueryService/3.0.0-rc",
        "SearchQueryService",
    ],
    "packages": [
        "PackageBaseAddress/3.0.0",
    ],
    "publish": [
        "PackagePublish/2.0.0",
    ],
}


def resolve_resource(service_index: Dict[str, Any], name: str) -> str:
    """Return the URL of one of: search, packages, publish."""
    try:
        wanted = _RESOURCE_MAP[name]
    except KeyError as exc:
        raise ValueError(f"No resource configured for '{name}'") from exc

    resources: List[Dict[str, Any]] = service_index.get("resources") or []
    for resource_type in wanted:
        for res in resources:
            types = res.get("@type")
            if isinstance(types, str):
                types = [types]
            if resource_type in (types or []):
                url = str(res.get("@id") or "").strip()
                if url:
                    return url.rstrip("/")
    raise ValueError(f"Service index does not expose a '{name}' resource ({', '.join(wanted)})")
