"""
Material properties module.

Accesses the materials database and retrieves the dielectric and phonon
parameters needed to build a polaron coupling set: optical and static
dielectric constants, band effective mass, unit-cell volume and the
infrared-active phonon spectrum (frequencies and IR activities).

A material is looked up as a whole section: first in the local database
(``materials.ini`` in the working directory, or the file given to
:func:`set_database_file`), then in the database shipped with the package.

Author: Rahul R. Sah
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import numpy as np

log = logging.getLogger(__name__)

_PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"
_MASTER_DATABASE_FILE = str(_PACKAGE_DATA_DIR / "materials.ini")

# User-overridable local database file
_database_file: str = "materials.ini"

# tag -> required
_SCALAR_TAGS = {"eps-optic": True, "eps-static": True, "m-eff": True, "volume": False}


def set_database_file(path: str) -> None:
    """Set the local materials database file path."""
    global _database_file
    _database_file = path
    if not os.path.isfile(path):
        log.warning("Cannot find material database %s; only the shipped one is used", path)


# ---------------------------------------------------------------------------
# INI sections
# ---------------------------------------------------------------------------

def read_ini_section(filepath: str, section: str) -> Optional[Dict[str, str]]:
    """
    Read one ``[SECTION]`` of an INI-style parameter file.

    Entries are ``tag=value``; lines starting with ``::`` are comments and
    section names are case-sensitive.  The first occurrence of a tag wins.

    Returns
    -------
    dict or None
        Tag to (stripped) value string, ``None`` if the section is absent.

    Raises
    ------
    FileNotFoundError
        If *filepath* does not exist.
    """
    header = f"[{section}]"
    entries = None
    with open(filepath, "r", encoding="utf-8") as fh:
        for line in fh:
            stripped = line.strip()
            if entries is None:
                if stripped == header:
                    entries = {}
                continue
            if stripped.startswith("["):
                break
            if not stripped or stripped.startswith("::") or "=" not in stripped:
                continue
            tag, value = stripped.split("=", 1)
            entries.setdefault(tag.strip(), value.strip())
    return entries


def _material_section(mat: str):
    """(section, source file) of a material, local database first."""
    searched = []
    for path in (_database_file, _MASTER_DATABASE_FILE):
        if not os.path.isfile(path):
            continue
        searched.append(path)
        entries = read_ini_section(path, mat.upper())
        if entries is not None:
            log.debug("Material %s found in %s", mat.upper(), path)
            return entries, path
    if not searched:
        raise FileNotFoundError(
            f"No materials database exists.  Tried: {_database_file} and {_MASTER_DATABASE_FILE}"
        )
    raise LookupError(f"Unknown material '{mat}' (searched {', '.join(searched)})")


def _positive(values, tag, mat, source):
    if values.size == 0 or np.any(~(values > 0.0)):
        raise ValueError(f"Unphysical value for material '{mat}', parameter '{tag}' in {source}")


def _numbers(entries, tag, mat, source):
    try:
        return np.array([float(x) for x in entries[tag].split(",") if x.strip()])
    except ValueError as exc:
        raise ValueError(
            f"File format error reading material '{mat}', parameter '{tag}' in {source}"
        ) from exc


# ---------------------------------------------------------------------------
# Material record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Material:
    """
    Dielectric and phonon data of one material.

    ``ir_activity is None`` marks a single effective phonon mode described
    only by ``phonon_freq[0]``.
    """

    name: str
    eps_optic: float
    eps_static: float
    m_eff: float
    phonon_freq: np.ndarray
    ir_activity: Optional[np.ndarray] = None
    volume: Optional[float] = None

    @property
    def is_multimode(self) -> bool:
        return self.ir_activity is not None

    @property
    def table(self) -> np.ndarray:
        """Raw (frequency THz, IR activity) table, shape (n_modes, 2)."""
        if self.ir_activity is None:
            raise ValueError(f"Material '{self.name}' has no infrared activity table")
        return np.column_stack([self.phonon_freq, self.ir_activity])


def load_material(mat: str) -> Material:
    """
    Load a material from the materials database.

    Parameters
    ----------
    mat : str
        Section name (case-insensitive), e.g. ``"MAPI"``.

    Returns
    -------
    Material

    Raises
    ------
    FileNotFoundError
        No database file is available.
    LookupError
        The material or one of its required parameters is missing.
    ValueError
        A value cannot be parsed or is unphysical.
    """
    entries, source = _material_section(mat)

    scalars = {}
    for tag, required in _SCALAR_TAGS.items():
        if tag not in entries:
            if required:
                raise LookupError(f"Material '{mat}' in {source} has no parameter '{tag}'")
            scalars[tag] = None
            continue
        value = _numbers(entries, tag, mat, source)[:1]
        _positive(value, tag, mat, source)
        scalars[tag] = float(value[0])

    if "phonon-freq" not in entries:
        raise LookupError(f"Material '{mat}' in {source} has no parameter 'phonon-freq'")
    freq = _numbers(entries, "phonon-freq", mat, source)
    _positive(freq, "phonon-freq", mat, source)

    activity = None
    if "ir-activity" in entries:
        activity = _numbers(entries, "ir-activity", mat, source)
        if activity.size != freq.size:
            raise ValueError(
                f"Material '{mat}': {activity.size} ir-activity values for {freq.size} phonon modes"
            )
        if scalars["volume"] is None:
            raise LookupError(f"Material '{mat}' has IR activities but no parameter 'volume'")
    elif freq.size > 1:
        raise ValueError(f"Material '{mat}' lists {freq.size} phonon modes without ir-activity")

    log.debug("Loaded material %s with %d phonon mode(s)", mat, freq.size)
    return Material(
        entries.get("name", mat.upper()), scalars["eps-optic"], scalars["eps-static"],
        scalars["m-eff"], freq, activity, scalars["volume"],
    )
