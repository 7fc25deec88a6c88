"""Persisted dashboard settings with a versioned schema."""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from levels.models import DEFAULT_COLOR, FibLevel, RsiOp, make_level_id
from .overlays import DEFAULT_OVERLAYS, OVERLAY_KEYS, OverlayConfig
from .store import DEFAULT_TIMEFRAME, TIMEFRAMES, DashboardState, complete_state, normalize_symbols

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

# Key names of the flat key/value layout (schema version 1)
LEGACY_KEYS = {
    "symbols": "fibdash.symbols",
    "levels": "fibdash.perSymFib",
    "overlays": "fibdash.perSymMeta",
    "use_heikin_ashi": "fibdash.useHA",
    "use_ha_rsi": "fibdash.useHaRsi",
    "timeframe": "fibdash.timeframe",
    "tts_enabled": "fibdash.ttsEnabled",
}
LEGACY_LEVEL_FIELDS = {
    "alertEnabled": "alert_enabled",
    "rsiThreshold": "rsi_threshold",
    "rsiOp": "rsi_op",
}


def level_to_dict(level: FibLevel) -> Dict[str, Any]:
    return {
        "id": level.id,
        "symbol": level.symbol,
        "ratio": level.ratio,
        "price": level.price,
        "enabled": level.enabled,
        "alert_enabled": level.alert_enabled,
        "rsi_threshold": level.rsi_threshold,
        "rsi_op": level.rsi_op.value,
        "color": level.color,
    }


def level_from_dict(data: Dict[str, Any], symbol: str) -> FibLevel:
    """Build a level, backfilling any field an older shape lacks."""
    ratio = float(data["ratio"])
    price = data.get("price")
    return FibLevel(
        id=data.get("id") or make_level_id(symbol, ratio),
        symbol=data.get("symbol") or symbol,
        ratio=ratio,
        price=float(price) if price is not None else None,
        enabled=bool(data.get("enabled", True)),
        alert_enabled=bool(data.get("alert_enabled", False)),
        rsi_threshold=float(data.get("rsi_threshold", 50)),
        rsi_op=RsiOp(data.get("rsi_op", RsiOp.GTE.value)),
        color=data.get("color") or DEFAULT_COLOR,
    )


def overlay_to_dict(cfg: OverlayConfig) -> Dict[str, Any]:
    return {"show": cfg.show, "color": cfg.color, "opacity": cfg.opacity, "smooth": cfg.smooth}


def overlay_from_dict(data: Dict[str, Any], default: OverlayConfig) -> OverlayConfig:
    merged = overlay_to_dict(default)
    merged.update({k: v for k, v in data.items() if k in merged})
    return OverlayConfig(
        show=bool(merged["show"]),
        color=str(merged["color"]),
        opacity=float(merged["opacity"]),
        smooth=int(merged["smooth"]),
    )


def serialize_state(state: DashboardState) -> Dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "symbols": list(state.symbols),
        "levels": {sym: [level_to_dict(l) for l in lines] for sym, lines in state.levels.items()},
        "overlays": {
            sym: {key: overlay_to_dict(cfg) for key, cfg in cfgs.items()}
            for sym, cfgs in state.overlays.items()
        },
        "timeframe": state.timeframe,
        "use_heikin_ashi": state.use_heikin_ashi,
        "use_ha_rsi": state.use_ha_rsi,
        "tts_enabled": state.tts_enabled,
    }


def migrate(raw: Any) -> Dict[str, Any]:
    """
    Bring a stored document to the current schema.

    Version 1 is the flat key/value layout with camelCase level fields.
    Anything that is not a mapping is treated as absent.
    """
    if not isinstance(raw, dict):
        return {"schema_version": SCHEMA_VERSION}
    version = raw.get("schema_version", 1)
    if not isinstance(version, int):
        version = 1
    doc = dict(raw)

    if version < 2:
        doc = {name: raw.get(legacy, raw.get(name)) for name, legacy in LEGACY_KEYS.items()}
        levels = doc.get("levels")
        if isinstance(levels, dict):
            doc["levels"] = {
                sym: [
                    {LEGACY_LEVEL_FIELDS.get(k, k): v for k, v in line.items()}
                    for line in lines if isinstance(line, dict)
                ]
                for sym, lines in levels.items() if isinstance(lines, list)
            }
        logger.info("Migrated dashboard settings from schema version %s", version)

    doc["schema_version"] = SCHEMA_VERSION
    return doc


def deserialize_state(raw: Any, default_symbols: Optional[List[str]] = None) -> DashboardState:
    """
    Build a state from a stored document.

    Each entry falls back to its default independently when missing or
    malformed; a bad entry never discards the others.
    """
    doc = migrate(raw)

    symbols = doc.get("symbols")
    if not isinstance(symbols, list) or not symbols:
        symbols = default_symbols or []
    symbols = normalize_symbols(symbols)

    levels = {}
    stored_levels = doc.get("levels") if isinstance(doc.get("levels"), dict) else {}
    for sym, lines in stored_levels.items():
        if not isinstance(lines, list):
            continue
        parsed = []
        for line in lines:
            try:
                parsed.append(level_from_dict(line, sym))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Dropping malformed level for %s: %s", sym, e)
        if parsed:
            levels[sym] = tuple(parsed)

    overlays = {}
    stored_overlays = doc.get("overlays") if isinstance(doc.get("overlays"), dict) else {}
    for sym, cfgs in stored_overlays.items():
        if not isinstance(cfgs, dict):
            continue
        overlays[sym] = {}
        for key in OVERLAY_KEYS:
            data = cfgs.get(key)
            if not isinstance(data, dict):
                continue
            try:
                overlays[sym][key] = overlay_from_dict(data, DEFAULT_OVERLAYS[key])
            except (TypeError, ValueError) as e:
                logger.warning("Using default %s overlay for %s: %s", key, sym, e)

    timeframe = doc.get("timeframe")
    if timeframe not in TIMEFRAMES:
        timeframe = DEFAULT_TIMEFRAME

    state = DashboardState(
        symbols=symbols,
        levels=levels,
        overlays=overlays,
        timeframe=timeframe,
        use_heikin_ashi=bool(doc.get("use_heikin_ashi") or False),
        use_ha_rsi=bool(doc.get("use_ha_rsi") or False),
        tts_enabled=bool(doc.get("tts_enabled") or False),
    )
    return complete_state(state)


class SettingsStore:
    """JSON file holding the dashboard settings."""

    def __init__(self, settings_file: str = "dashboard_settings.json"):
        self.settings_file = settings_file
        self.settings_path = Path(settings_file)

    def _load_raw(self) -> Any:
        """Load the stored document; missing or corrupt files read as None."""
        if not self.settings_path.exists():
            return None
        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading dashboard settings: %s", e)
            return None

    def load(self, default_symbols: Optional[List[str]] = None) -> DashboardState:
        return deserialize_state(self._load_raw(), default_symbols)

    def save(self, state: DashboardState):
        """Save settings to file."""
        temp_file = f"{self.settings_file}.tmp"
        try:
            # Write to temporary file first, then rename (atomic operation)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(serialize_state(state), f, indent=2, ensure_ascii=False)
            os.replace(temp_file, self.settings_file)
        except OSError as e:
            logger.error("Error saving dashboard settings: %s", e)
            if os.path.exists(temp_file):
                try:
                    os.remove(temp_file)
                except OSError:
                    pass
