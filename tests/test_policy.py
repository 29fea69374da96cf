import pytest

from ownmesh.policy import ApplyPolicy, compare_semver, policy_allows


def test_compare_basic():
    assert compare_semver("1.2.3", "1.2.3") == 0
    assert compare_semver("1.2.3", "1.2.4") == -1
    assert compare_semver("1.2.4", "1.2.3") == 1
    assert compare_semver("1.10.0", "1.2.0") == 1
    assert compare_semver("2.0.0", "1.99.99") == 1


def test_compare_prerelease():
    assert compare_semver("1.2.3", "1.2.3-rc1") == 1
    assert compare_semver("1.2.3-rc1", "1.2.3-rc2") == -1
    assert compare_semver("1.2.3-rc1", "1.2.3") == -1


def test_compare_missing_and_garbage_components_count_as_zero():
    assert compare_semver("1", "1.0.0") == 0
    assert compare_semver("1.x.3", "1.0.3") == 0
    assert compare_semver("1.2.3.9", "1.2.3") == 0


def test_policy_patch_allows_patch_only():
    assert policy_allows(ApplyPolicy.PATCH, "0.1.5", "0.1.6")
    assert not policy_allows(ApplyPolicy.PATCH, "0.1.5", "0.2.0")
    assert not policy_allows(ApplyPolicy.PATCH, "0.1.5", "1.0.0")
    assert not policy_allows(ApplyPolicy.PATCH, "0.1.5", "0.1.4")
    assert not policy_allows(ApplyPolicy.PATCH, "0.1.5", "0.1.5")


def test_policy_minor_allows_patch_and_minor():
    assert policy_allows(ApplyPolicy.MINOR, "0.1.5", "0.1.6")
    assert policy_allows(ApplyPolicy.MINOR, "0.1.5", "0.2.0")
    assert not policy_allows(ApplyPolicy.MINOR, "0.1.5", "1.0.0")


def test_policy_all_allows_any_upgrade():
    assert policy_allows(ApplyPolicy.ALL, "0.1.5", "1.0.0")
    assert policy_allows(ApplyPolicy.ALL, "0.1.5", "5.0.0")
    assert not policy_allows(ApplyPolicy.ALL, "0.1.5", "0.1.5")


def test_policy_none_blocks_everything():
    assert not policy_allows(ApplyPolicy.NONE, "0.1.5", "0.1.6")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("patch", ApplyPolicy.PATCH),
        ("minor", ApplyPolicy.MINOR),
        ("all", ApplyPolicy.ALL),
        ("none", ApplyPolicy.NONE),
        ("Patch", None),
        ("", None),
        ("major", None),
    ],
)
def test_parse(text, expected):
    assert ApplyPolicy.parse(text) is expected