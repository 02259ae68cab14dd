"""Bruno to OpenCollection document conversion.

This module maps the packed Bruno collection JSON onto the OpenCollection
interchange shape. It performs no IO: callers pass parsed documents and
receive plain dictionaries ready for JSON serialization.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from core.constants import OPENCOLLECTION_FORMAT_VERSION
from core.errors import ConversionError

_REQUEST_ITEM_TYPES = {"http-request": "http", "graphql-request": "graphql"}
_FOLDER_ITEM_TYPE = "folder"
_TEXT_BODY_MODES = ("json", "text", "xml", "sparql")
_FORM_BODY_MODES = {"formUrlEncoded": "form-urlencoded", "multipartForm": "multipart-form"}
_PASSTHROUGH_AUTH_MODES = ("none", "inherit")
_SCRIPT_PHASES = (("req", "before-request"), ("res", "after-response"))


def convert_bruno_to_opencollection(document: object) -> dict[str, Any]:
    """Convert a packed Bruno collection into an OpenCollection document.

    Args:
        document: Parsed JSON produced by the packer.

    Returns:
        OpenCollection document with one item per source request or folder.

    Raises:
        ConversionError: If the document does not have the packed Bruno shape.
    """
    root = _expect_mapping(document, "collection root")
    name = _required_string(root, "name", "collection root")
    result: dict[str, Any] = {
        "opencollection": OPENCOLLECTION_FORMAT_VERSION,
        "info": {"name": name},
        "items": _convert_items(root.get("items"), "collection root"),
    }
    environments = _convert_environments(root.get("environments"))
    if environments:
        result["config"] = {"environments": environments}
    collection_root = _optional_mapping(root.get("root"), "collection root settings")
    request_defaults = _convert_request_defaults(collection_root.get("request"), "collection")
    if request_defaults:
        result["request"] = request_defaults
    docs = _docs_text(collection_root)
    if docs:
        result["docs"] = docs
    return result


def count_requests(document: Mapping[str, Any]) -> int:
    """Count request items in an OpenCollection document, folders included."""
    return sum(_count_item_requests(item) for item in document.get("items", []))


def _count_item_requests(item: Mapping[str, Any]) -> int:
    if item.get("info", {}).get("type") == _FOLDER_ITEM_TYPE:
        return sum(_count_item_requests(child) for child in item.get("items", []))
    return 1


def _convert_items(raw_items: object, context: str) -> list[dict[str, Any]]:
    if raw_items is None:
        return []
    item_rows = _expect_sequence(raw_items, f"items of {context}")
    return [
        _convert_item(row, f"item #{index + 1} of {context}")
        for index, row in enumerate(item_rows)
    ]


def _convert_item(raw_item: object, context: str) -> dict[str, Any]:
    item = _expect_mapping(raw_item, context)
    name = _required_string(item, "name", context)
    item_type = item.get("type")
    if item_type == _FOLDER_ITEM_TYPE:
        return _convert_folder(item, name)
    if isinstance(item_type, str) and item_type in _REQUEST_ITEM_TYPES:
        return _convert_request_item(item, name, _REQUEST_ITEM_TYPES[item_type])
    raise ConversionError(
        f"Unsupported item type {item_type!r} in {context} ('{name}'). "
        f"Expected one of: folder, {', '.join(_REQUEST_ITEM_TYPES)}."
    )


def _convert_folder(item: Mapping[str, Any], name: str) -> dict[str, Any]:
    context = f"folder '{name}'"
    folder: dict[str, Any] = {
        "info": _item_info(item, name, _FOLDER_ITEM_TYPE),
        "items": _convert_items(item.get("items"), context),
    }
    folder_root = _optional_mapping(item.get("root"), f"{context} settings")
    request_defaults = _convert_request_defaults(folder_root.get("request"), context)
    if request_defaults:
        folder["request"] = request_defaults
    docs = _docs_text(folder_root)
    if docs:
        folder["docs"] = docs
    return folder


def _convert_request_item(item: Mapping[str, Any], name: str, kind: str) -> dict[str, Any]:
    context = f"request '{name}'"
    if "request" not in item:
        raise ConversionError(f"Invalid {context}: missing field 'request'.")
    request = _expect_mapping(item["request"], context)
    url = request.get("url", "")
    if not isinstance(url, str):
        raise ConversionError(f"Invalid {context}: field 'url' must be a string.")
    method = request.get("method", "GET" if kind == "http" else "POST")
    if not isinstance(method, str):
        raise ConversionError(f"Invalid {context}: field 'method' must be a string.")
    details: dict[str, Any] = {"method": method.upper(), "url": url}
    headers = _convert_pairs(request.get("headers"), f"headers of {context}")
    if headers:
        details["headers"] = headers
    params = _convert_params(request.get("params"), context)
    if params:
        details["params"] = params
    body = _convert_body(request.get("body"), kind, context)
    if body is not None:
        details["body"] = body
    auth = _convert_auth(request.get("auth"), context)
    if auth is not None:
        details["auth"] = auth
    converted: dict[str, Any] = {"info": _item_info(item, name, kind), kind: details}
    runtime = _convert_runtime(request, context)
    if runtime:
        converted["runtime"] = runtime
    docs = _docs_text(request)
    if docs:
        converted["docs"] = docs
    return converted


def _item_info(item: Mapping[str, Any], name: str, item_type: str) -> dict[str, Any]:
    info: dict[str, Any] = {"name": name, "type": item_type}
    seq = item.get("seq")
    if isinstance(seq, int) and not isinstance(seq, bool):
        info["seq"] = seq
    return info


def _convert_request_defaults(raw_request: object, context: str) -> dict[str, Any]:
    """Convert collection- or folder-level request defaults."""
    request = _optional_mapping(raw_request, f"request defaults of {context}")
    defaults: dict[str, Any] = {}
    headers = _convert_pairs(request.get("headers"), f"headers of {context}")
    if headers:
        defaults["headers"] = headers
    auth = _convert_auth(request.get("auth"), context)
    if auth is not None:
        defaults["auth"] = auth
    defaults.update(_convert_runtime(request, context))
    return defaults


def _convert_runtime(request: Mapping[str, Any], context: str) -> dict[str, Any]:
    runtime: dict[str, Any] = {}
    variables = _convert_variables(request.get("vars"), context)
    if variables:
        runtime["variables"] = variables
    scripts = _convert_scripts(request, context)
    if scripts:
        runtime["scripts"] = scripts
    assertions = _convert_assertions(request.get("assertions"), context)
    if assertions:
        runtime["assertions"] = assertions
    return runtime


def _convert_variables(raw_vars: object, context: str) -> list[dict[str, Any]]:
    variables_mapping = _optional_mapping(raw_vars, f"variables of {context}")
    variables: list[dict[str, Any]] = []
    for phase, scope in _SCRIPT_PHASES:
        phase_context = f"{phase} variables of {context}"
        for entry in _convert_pairs(variables_mapping.get(phase), phase_context):
            variables.append({**entry, "scope": scope})
    return variables


def _convert_scripts(request: Mapping[str, Any], context: str) -> list[dict[str, str]]:
    scripts_mapping = _optional_mapping(request.get("script"), f"scripts of {context}")
    scripts: list[dict[str, str]] = []
    for phase, script_type in _SCRIPT_PHASES:
        code = scripts_mapping.get(phase)
        if isinstance(code, str) and code.strip():
            scripts.append({"type": script_type, "code": code})
    tests = request.get("tests")
    if isinstance(tests, str) and tests.strip():
        scripts.append({"type": "tests", "code": tests})
    return scripts


def _convert_assertions(raw_assertions: object, context: str) -> list[dict[str, Any]]:
    assertions: list[dict[str, Any]] = []
    for entry in _convert_pairs(raw_assertions, f"assertions of {context}"):
        assertion: dict[str, Any] = {"expression": entry["name"], "value": entry["value"]}
        if entry.get("disabled"):
            assertion["disabled"] = True
        assertions.append(assertion)
    return assertions


def _convert_params(raw_params: object, context: str) -> list[dict[str, Any]]:
    if raw_params is None:
        return []
    param_rows = _expect_sequence(raw_params, f"params of {context}")
    params: list[dict[str, Any]] = []
    for index, row in enumerate(param_rows):
        row_context = f"param #{index + 1} of {context}"
        param = _convert_pair(row, row_context)
        raw_type = _expect_mapping(row, row_context).get("type", "query")
        param["type"] = raw_type if raw_type in ("query", "path") else "query"
        params.append(param)
    return params


def _convert_body(raw_body: object, kind: str, context: str) -> dict[str, Any] | None:
    if raw_body is None:
        return None
    body = _expect_mapping(raw_body, f"body of {context}")
    if kind == "graphql":
        return _convert_graphql_body(body, context)
    mode = body.get("mode", "none")
    if mode == "none":
        return None
    if mode in _TEXT_BODY_MODES:
        data = body.get(mode, "")
        if not isinstance(data, str):
            raise ConversionError(f"Invalid body of {context}: '{mode}' content must be a string.")
        return {"type": mode, "data": data}
    if mode in _FORM_BODY_MODES:
        fields = _convert_pairs(body.get(mode), f"{mode} body of {context}")
        return {"type": _FORM_BODY_MODES[mode], "data": fields}
    if mode == "file":
        files = _expect_sequence(body.get("file", []), f"file body of {context}")
        return {"type": "file", "data": [dict(_expect_mapping(entry, context)) for entry in files]}
    raise ConversionError(f"Unsupported body mode {mode!r} in {context}.")


def _convert_graphql_body(body: Mapping[str, Any], context: str) -> dict[str, Any] | None:
    graphql = _optional_mapping(body.get("graphql"), f"graphql body of {context}")
    query = graphql.get("query", "")
    variables = graphql.get("variables", "")
    if not isinstance(query, str) or not isinstance(variables, str):
        raise ConversionError(
            f"Invalid graphql body of {context}: 'query' and 'variables' must be strings."
        )
    if not query and not variables:
        return None
    return {"query": query, "variables": variables}


def _convert_auth(raw_auth: object, context: str) -> str | dict[str, Any] | None:
    if raw_auth is None:
        return None
    auth = _expect_mapping(raw_auth, f"auth of {context}")
    mode = auth.get("mode", "none")
    if not isinstance(mode, str):
        raise ConversionError(f"Invalid auth of {context}: 'mode' must be a string.")
    if mode in _PASSTHROUGH_AUTH_MODES:
        return mode
    settings = auth.get(mode)
    if settings is None:
        return {"type": mode}
    settings_mapping = _expect_mapping(settings, f"{mode} auth of {context}")
    return {"type": mode, **settings_mapping}


def _convert_environments(raw_environments: object) -> list[dict[str, Any]]:
    if raw_environments is None:
        return []
    environment_rows = _expect_sequence(raw_environments, "environments")
    environments: list[dict[str, Any]] = []
    for index, row in enumerate(environment_rows):
        context = f"environment #{index + 1}"
        environment = _expect_mapping(row, context)
        name = _required_string(environment, "name", context)
        variables = []
        raw_variables = environment.get("variables") or []
        for variable_index, variable_row in enumerate(_expect_sequence(raw_variables, context)):
            variable_context = f"variable #{variable_index + 1} of environment '{name}'"
            variable = _convert_pair(variable_row, variable_context)
            if _expect_mapping(variable_row, variable_context).get("secret"):
                variable["secret"] = True
            variables.append(variable)
        environments.append({"name": name, "variables": variables})
    return environments


def _convert_pairs(raw_pairs: object, context: str) -> list[dict[str, Any]]:
    if raw_pairs is None:
        return []
    pair_rows = _expect_sequence(raw_pairs, context)
    return [
        _convert_pair(row, f"entry #{index + 1} of {context}")
        for index, row in enumerate(pair_rows)
    ]


def _convert_pair(raw_pair: object, context: str) -> dict[str, Any]:
    """Convert a Bruno ``{name, value, enabled}`` row."""
    pair = _expect_mapping(raw_pair, context)
    name = _required_string(pair, "name", context)
    value = pair.get("value", "")
    if value is None:
        value = ""
    converted: dict[str, Any] = {"name": name, "value": value}
    if pair.get("enabled") is False:
        converted["disabled"] = True
    description = pair.get("description")
    if isinstance(description, str) and description:
        converted["description"] = description
    return converted


def _docs_text(mapping: Mapping[str, Any]) -> str:
    docs = mapping.get("docs")
    return docs if isinstance(docs, str) else ""


def _required_string(mapping: Mapping[str, Any], field_name: str, context: str) -> str:
    raw_value = mapping.get(field_name)
    if not isinstance(raw_value, str):
        raise ConversionError(f"Invalid {context}: field '{field_name}' must be a string.")
    return raw_value


def _optional_mapping(value: object, context: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _expect_mapping(value, context)


def _expect_mapping(value: object, context: str) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    raise ConversionError(
        f"Invalid {context}: expected JSON object, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[Any]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise ConversionError(f"Invalid {context}: expected JSON array, got {type(value).__name__}.")
