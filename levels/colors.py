"""CSS color helpers for price lines and overlays."""


def with_alpha(color: str, alpha: float = 0.75) -> str:
    """
    Convert a CSS color to ``rgba(...)`` with the given alpha.

    Handles ``#rgb``, ``#rrggbb`` and ``rgb(...)``; ``rgba(...)`` and anything
    unrecognised pass through unchanged.
    """
    a = max(0.0, min(1.0, float(alpha)))
    if not color:
        return f"rgba(255,255,255,{a})"
    c = color.strip().lower()
    if c.startswith("rgba("):
        return c
    if c.startswith("rgb("):
        return f"rgba({c[4:-1]}, {a})"
    if c.startswith("#"):
        hex_ = c[1:]
        if len(hex_) == 3:
            hex_ = "".join(ch * 2 for ch in hex_)
        if len(hex_) == 6:
            try:
                r, g, b = (int(hex_[i:i + 2], 16) for i in (0, 2, 4))
            except ValueError:
                return color
            return f"rgba({r}, {g}, {b}, {a})"
    return color
