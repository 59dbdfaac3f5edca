"""
IPython/Jupyter key-completion support for bracket-style access:

    store.tags["py<TAB>        → known tag names
    store["3f2<TAB>            → article ids

Importing this module registers the completer with the running IPython
shell, if there is one.
"""

import re
from IPython import get_ipython

from stockle.registry import TagRegistry
from stockle.store import CollectionStore

# Match:   variable.attribute["prefix   or   variable["prefix
_KEY_ACCESS = re.compile(r'(\w+)(?:\.(\w+))?\[["\']([^"\']*)$')


def candidates_for(obj, prefix: str):
    """Completion candidates of `obj` starting with `prefix`."""
    if isinstance(obj, TagRegistry):
        names = obj.names()
        folded = prefix.casefold()
        return [n for n in names if n.casefold().startswith(folded)]
    if isinstance(obj, CollectionStore):
        return [i for i in obj._ipython_key_completions_() if i.startswith(prefix)]
    return []


def completion_for_library(self, event):
    """
    Return suggested keys for expressions of the form:

        <object>.<attribute>["<prefix>      or      <object>["<prefix>

    Only triggers when the resolved object is a TagRegistry or a
    CollectionStore.
    """

    match = _KEY_ACCESS.search(event.line)
    if not match:
        return []

    var_name, attr_name, prefix = match.groups()

    shell = get_ipython()
    if shell is None:
        return []

    target = shell.user_ns.get(var_name)
    if target is None:
        return []
    if attr_name:
        target = getattr(target, attr_name, None)

    return candidates_for(target, prefix)


# Register the completer with IPython
ip = get_ipython()
if ip:
    ip.set_hook("complete_command", completion_for_library)
