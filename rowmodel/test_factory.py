import pytest

from rowmodel import ConfigurationError, Model, OnDelete, Registry, SchemaError
from rowmodel.errors import AmbiguousError, NotStoredError


def test_columns_come_from_schema(registry):
    pets = registry.factory("Pet")
    assert list(pets.attrs) == ["name", "age", "fkOwner"]
    assert registry.factory("Owner").attrs["name"].char_limit == 10
    assert registry.factory("Owner").attrs["city"].char_limit is None


def test_fields_option_restricts_columns(row_store):
    reg = Registry(row_store)
    owners = reg.create_factory("Owner", {"fields": "name, city"})
    assert list(owners.attrs) == ["name", "city"]


def test_missing_table(row_store):
    with pytest.raises(SchemaError):
        Registry(row_store).create_factory("Nope")


def test_association_defaults(registry):
    pets = registry.factory("Pet")
    visits = pets.has_many["visits"]
    assert visits.foreign_key == "fkPet"
    assert visits.on_delete is OnDelete.RESTRICT
    procedures = registry.factory("Visit").has_many["procedures"]
    assert procedures.through == "VisitProcedure"
    assert procedures.remote_key == "fkProcedure"
    assert procedures.on_delete is None
    owner = pets.belongs_to["owner"]
    assert (owner.remote_model, owner.foreign_key) == ("Owner", "fkOwner")


def test_accessor_table(registry):
    assert {"find_pets", "sorted_pets", "new_pets"} <= set(registry.factory("Owner").accessors)
    visit_accessors = set(registry.factory("Visit").accessors)
    assert "find_procedures" in visit_accessors
    assert "new_procedures" not in visit_accessors


@pytest.mark.parametrize("options", [
    {"has_many": [{"remote_name": "pets", "on_delete": "sometimes"}]},
    {"has_many": [{"remote_name": "x", "through": "VisitProcedure", "on_delete": "cascade"}]},
    {"has_many": [{"remote_name": "pets"}, {"remote_name": "pets"}]},
    {"json_attrs": "nosuchcolumn"},
    {"object_attrs": {"tags": str}},
    {"colour": "blue"},
    {"compare": 42},
])
def test_bad_options(row_store, options):
    with pytest.raises(ConfigurationError):
        Registry(row_store).create_factory("Owner", options)


def test_unknown_model(registry):
    with pytest.raises(ConfigurationError):
        registry.factory("Cat")


def test_register_model_class(row_store):
    class Toy(Model):
        model_options = {"compare": "name"}

        def shout(self):
            return self.name.upper()

    reg = Registry(row_store)
    toys = reg.register(Toy)
    assert toys.model_name == "Toy"
    toy = toys.create({"name": "ball"})
    assert isinstance(toy, Toy)
    assert toy.shout() == "BALL"


def test_create_store_get(registry, stored):
    owners = registry.factory("Owner")
    alice = stored(owners, name="Alice", city="Oslo")
    assert alice.id is not None
    again = owners.get(alice.id)
    assert (again.name, again.city) == ("Alice", "Oslo")
    assert owners.get(None) is None
    assert owners.get(9999) is None
    assert owners.count() == 1
    assert owners.row_exists(alice.id)
    assert not owners.row_exists(0)


def test_store_truncates_limited_columns(registry, stored):
    owner = stored(registry.factory("Owner"), name="Bartholomew Jones")
    assert owner.name == "Bartholome"
    assert registry.factory("Owner").get(owner.id).name == "Bartholome"


def test_update_only_touches_changed_columns(registry, stored):
    owners = registry.factory("Owner")
    owner = stored(owners, name="Carl", city="Rome")
    owner.city = "Milan"
    assert owner.is_modified("city")
    assert owner.store() == []
    assert not owner.is_modified("city")
    assert owners.get(owner.id).city == "Milan"


def test_primary_key_is_immutable_once_stored(registry, stored):
    owner = stored(registry.factory("Owner"), name="Dora")
    with pytest.raises(AttributeError):
        owner.id = owner.id + 1


def test_unknown_attribute(registry):
    owner = registry.factory("Owner").create()
    with pytest.raises(AttributeError):
        owner.colour = "blue"
    with pytest.raises(AttributeError):
        owner.colour


def test_sorted_by_columns(registry, stored):
    pets = registry.factory("Pet")
    stored(pets, name="b", age=2)
    stored(pets, name="a", age=2)
    stored(pets, name="c", age=7)
    assert [p.name for p in pets.sorted()] == ["c", "a", "b"]
    by_name = pets.sorted(compare=lambda x, y: (x.name > y.name) - (x.name < y.name))
    assert [p.name for p in by_name] == ["a", "b", "c"]
    assert [p.name for p in pets.sort(pets.find())] == ["c", "a", "b"]


def test_sorted_without_compare(registry):
    with pytest.raises(ConfigurationError):
        registry.factory("Toy").sorted()


def test_compare_true_delegates_to_instance(row_store, stored):
    class Pet(Model):
        model_options = {"compare": True}

        def compare(self, other):
            return len(self.name) - len(other.name)

    pets = Registry(row_store).register(Pet)
    stored(pets, name="Rex")
    stored(pets, name="Bo")
    stored(pets, name="Fluffy")
    assert [p.name for p in pets.sorted()] == ["Bo", "Rex", "Fluffy"]


def test_find_unique(registry, stored):
    pets = registry.factory("Pet")
    rex = stored(pets, name="Rex", age=3)
    assert pets.find_unique({"name": "Rex"}).id == rex.id
    assert pets.find_unique({"name": "Max"}) is None
    assert pets.find_unique({}) is None
    fresh = pets.find_unique({"name": "Max"}, ensure={"age": 5, "bogus": 1})
    assert fresh.id is None
    assert (fresh.name, fresh.age) == ("Max", 5)
    stored(pets, name="Rex", age=4)
    with pytest.raises(AmbiguousError) as excinfo:
        pets.find_unique({"name": "Rex"})
    assert len(excinfo.value.found) == 2


def test_add_find_cond(registry, stored):
    pets = registry.factory("Pet")
    for name, age in (("a", 1), ("b", 5), ("c", 9)):
        stored(pets, name=name, age=age)
    cond = pets.add_find_cond(None, "age", 4, ">")
    cond = pets.add_find_cond(cond, "name", "a", logic="OR")
    assert sorted(p.name for p in pets.find(cond)) == ["a", "b", "c"]
    cond = pets.add_find_cond({"name": "b"}, "age", 5)
    assert [p.name for p in pets.find(cond)] == ["b"]


def test_sanitize_strips_tags_except_markdown(row_store):
    reg = Registry(row_store)
    owners = reg.create_factory("Owner", {"markdown": "city"})
    clean = owners.sanitize({
        "name": "  <b>Eve</b> ",
        "city": "<em>Big</em> <script>x</script>town",
        "evil": "drop me",
    })
    assert clean == {"name": "Eve", "city": "<em>Big</em> xtown"}
    assert owners.sanitize({"evil": 1}, allow=["evil"]) == {"evil": 1}
    assert owners.sanitize({"name": "<i>x</i>"}, clean=False) == {"name": "<i>x</i>"}


def test_new_many_needs_stored_owner(registry):
    owner = registry.factory("Owner").create({"name": "Fay"})
    with pytest.raises(NotStoredError):
        owner.new_pets({"name": "Rex"})
    assert owner.find_pets() == []


def test_cast_and_clone(registry, stored):
    owner = stored(registry.factory("Owner"), name="Gus", tags=["a"])
    assert owner.cast() == {"id": owner.id, "name": "Gus", "city": None, "tags": ["a"]}
    clone = owner.create_clone()
    assert clone.id is None
    assert clone.store() == []
    assert clone.id != owner.id
    assert clone.tags == ["a"]


def test_clear_attrs_keeps_id(registry, stored):
    owner = stored(registry.factory("Owner"), name="Hal", city="Kyiv")
    owner.clear_attrs()
    assert owner.id is not None
    assert owner.name is None
    assert owner.cast()["city"] is None


def test_compare_keys_with_directions(row_store, stored):
    pets = Registry(row_store).create_factory("Pet", {"compare": ["name", "age DESC"]})
    for name, age in (("b", 1), ("a", 1), ("b", 9), ("a", 5)):
        stored(pets, name=name, age=age)
    expected = [("a", 5), ("a", 1), ("b", 9), ("b", 1)]
    assert [(p.name, p.age) for p in pets.sorted()] == expected
    assert [(p.name, p.age) for p in pets.sort(pets.find())] == expected


def test_find_with_model_class(registry, stored):
    class Special(Model):
        pass

    pets = registry.factory("Pet")
    stored(pets, name="Rex")
    found = pets.find_one({"name": "Rex"}, {"model_class": Special})
    assert isinstance(found, Special)
    assert found.name == "Rex"


@pytest.mark.parametrize("value, expected", [
    ("<<script>script>alert(1)<</script>/script>", "alert(1)"),
    ("<scr<b>ipt>alert(1)</scr<b>ipt>", "ipt>alert(1)ipt>"),
    ("hi <img src=x onerror=alert(1) ", "hi"),
    ("a < b and <!-- never closed", "a < b and"),
])
def test_sanitize_removes_nested_and_unclosed_tags(registry, value, expected):
    assert registry.factory("Owner").clean("city", value) == expected
