import pytest

from hostcompat.core.errors import ConfigurationError
from hostcompat.core.registry import Locality
from hostcompat.engine.declaration import (
    CapabilityKind,
    Declaration,
    NamingStrategy,
    VersionRange,
)


def test_indirect_real_name_defaults_to_compat_prefix():
    d = Declaration(original_name="take", naming_strategy=NamingStrategy.INDIRECT)
    assert d.real_name == "compat--take"
    assert d.target_name == "compat--take"
    assert d.bound_names() == {"take", "compat--take"}


def test_self_aliasing_is_rejected():
    d = Declaration(
        original_name="take",
        naming_strategy=NamingStrategy.INDIRECT,
        real_name="take",
    )
    with pytest.raises(ConfigurationError):
        d.validate()


def test_prefixed_only_with_version_is_rejected():
    d = Declaration(
        original_name="plist-get",
        naming_strategy=NamingStrategy.PREFIXED_ONLY,
        real_name="compat-plist-get",
        version_introduced="29.1",
    )
    with pytest.raises(ConfigurationError):
        d.validate()


def test_prefixed_only_needs_real_name():
    d = Declaration(original_name="plist-get", naming_strategy=NamingStrategy.PREFIXED_ONLY)
    with pytest.raises(ConfigurationError):
        d.validate()


def test_malformed_version_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        Declaration(original_name="x", version_introduced="29.x").validate()
    with pytest.raises(ConfigurationError):
        Declaration(original_name="x", version_range=VersionRange(min="abc")).validate()


def test_inverted_range_is_rejected():
    with pytest.raises(ConfigurationError):
        VersionRange(min="28.1", max="26.1").validate()


def test_locality_only_on_variables():
    d = Declaration(original_name="f", locality=Locality.BUFFER)
    with pytest.raises(ConfigurationError):
        d.validate()
    Declaration(
        original_name="v",
        kind=CapabilityKind.VARIABLE,
        locality=Locality.BUFFER,
    ).validate()


def test_constant_buffer_local_is_rejected():
    d = Declaration(
        original_name="v",
        kind=CapabilityKind.VARIABLE,
        locality=Locality.BUFFER,
        constant=True,
    )
    with pytest.raises(ConfigurationError):
        d.validate()


def test_range_contains_and_overlaps():
    r = VersionRange(min="25.1", max="27.2")
    assert r.contains("25.1")
    assert r.contains("27.2")
    assert not r.contains("24.5")
    assert not r.contains("28.1")
    assert VersionRange().contains("1")

    assert r.overlaps(VersionRange(min="27.2"))
    assert not r.overlaps(VersionRange(min="28.1"))
    assert not VersionRange(max="24.5").overlaps(r)
    assert VersionRange().overlaps(r)
