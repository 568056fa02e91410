"""Match user selectors against platform catalogs."""

import re

from novalaunch.provisioning.types import CatalogEntry, RawRecord, Selector


def find_matching(collection, selector: Selector) -> CatalogEntry | None:
    """Return the first entry in *collection* matching *selector*, or None.

    Raw records (networks) match on their ``name`` field only. Typed
    resources match on id, then name, then, when *selector* is a compiled
    pattern, a partial match of the pattern against the name.
    """
    for entry in collection:
        if isinstance(entry, RawRecord):
            if entry.name == selector:
                return entry
            continue

        if entry.id == selector:
            return entry
        if entry.name == selector:
            return entry
        if isinstance(selector, re.Pattern) and entry.name is not None and selector.search(entry.name):
            return entry

    return None
