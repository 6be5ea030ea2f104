_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human readable size with base-1024 units, e.g. 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 Bytes"
    decimals = max(0, decimals)
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(_UNITS) - 1:
        i += 1
    value = round(num_bytes / (1024 ** i), decimals)
    text = f"{value:.{decimals}f}"
    if decimals:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_UNITS[i]}"
