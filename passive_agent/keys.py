from __future__ import annotations

from passive_agent.errors import CheckError

INVALID_KEY = "Invalid item key format."


def _split_params(raw: str) -> list[str]:
    params: list[str] = []
    current: list[str] = []
    quoted = False
    was_quoted = False
    i = 0

    while i < len(raw):
        ch = raw[i]
        if quoted:
            if ch == "\\" and i + 1 < len(raw) and raw[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            if ch == '"':
                quoted = False
            else:
                current.append(ch)
        elif ch == '"' and not "".join(current).strip():
            current = []
            quoted = True
            was_quoted = True
        elif ch == ",":
            params.append("".join(current) if was_quoted else "".join(current).strip())
            current = []
            was_quoted = False
        elif was_quoted:
            # Only whitespace may follow a closing quote.
            if not ch.isspace():
                raise CheckError(INVALID_KEY)
        else:
            current.append(ch)
        i += 1

    if quoted:
        raise CheckError(INVALID_KEY)
    params.append("".join(current) if was_quoted else "".join(current).strip())
    return params


def parse_item_key(key: str) -> tuple[str, list[str]]:
    """
    Split an item key such as ``net.tcp.port[,80]`` into its name and
    parameter list. A key without brackets has no parameters; ``name[]``
    has a single empty parameter.
    """
    bracket = key.find("[")
    if bracket == -1:
        name, params = key, []
    else:
        if not key.endswith("]"):
            raise CheckError(INVALID_KEY)
        name = key[:bracket]
        params = _split_params(key[bracket + 1 : -1])

    if not name or any(ch.isspace() or ch in "[]," for ch in name):
        raise CheckError(INVALID_KEY)
    return name, params
