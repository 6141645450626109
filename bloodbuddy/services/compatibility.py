"""
Simplified donor compatibility lookup.

A requested group is served by donors of the same group plus the universal
donor groups: O- always, and O+ when the requested group is Rh-positive.
This is not full ABO/Rh cross-matching (an A+ patient is not matched with
A- donors, for example) and must not be treated as medically complete.
"""
from typing import FrozenSet

from bloodbuddy.models import BloodGroup

UNIVERSAL_DONOR = BloodGroup.O_NEGATIVE
UNIVERSAL_POSITIVE_DONOR = BloodGroup.O_POSITIVE


def compatible_donors(requested_group: BloodGroup) -> FrozenSet[BloodGroup]:
    requested_group = BloodGroup(requested_group)
    groups = {requested_group, UNIVERSAL_DONOR}
    if requested_group.is_rh_positive:
        groups.add(UNIVERSAL_POSITIVE_DONOR)
    return frozenset(groups)
