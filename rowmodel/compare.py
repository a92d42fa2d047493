from functools import cmp_to_key


def _cmp_values(a, b):
    # None sorts first, like NULL in an ascending ORDER BY
    if a == b:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    return -1 if a < b else 1


def parse_keys(names):
    """["a", "b DESC"] -> [("a", False), ("b", True)]"""
    keys = []
    for desc in names:
        words = desc.split()
        keys.append((words[0], len(words) > 1 and words[1].upper() == "DESC"))
    return keys


def attr_comparator(keys):
    def compare(o1, o2):
        for attr, descending in keys:
            result = _cmp_values(getattr(o1, attr), getattr(o2, attr))
            if result:
                return -result if descending else result
        return 0
    return compare


def delegate_comparator(o1, o2):
    return o1.compare(o2)


def build_compare(option):
    """Return (comparator, order_by) for the factory's compare option.

    order_by is a list of (column, "ASC"/"DESC") that storage can sort by, or
    None when sorting has to happen in memory.
    """
    if option is None:
        return None, None
    if option is True:
        return delegate_comparator, None
    if callable(option):
        return option, None
    keys = parse_keys(option)
    return attr_comparator(keys), [(attr, "DESC" if desc else "ASC") for attr, desc in keys]


def stable_sort(instances, comparator):
    return sorted(instances, key=cmp_to_key(comparator))
