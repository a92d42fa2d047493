import pytest

from rowmodel import Model, Registry


class Pet(Model):
    def errors_preventing_store(self):
        errors = []
        self.report_falsy(errors, [("name", "pet name")])
        self.report_row_missing(errors, [("Owner", "owner", None, True)])
        self.report_duplicate(errors, ["name", ("fkOwner", "owner")])
        self.check_integer(errors, "age", default=0)
        return errors


@pytest.fixture
def models(row_store):
    reg = Registry(row_store)
    owners = reg.create_factory("Owner")
    pets = reg.register(Pet)
    return owners, pets


def test_report_falsy_and_missing_row(models):
    owners, pets = models
    assert pets.create({"fkOwner": 77}).store() == ["missing pet name", "missing owner with id 77"]


def test_null_reference_allowed(models):
    _, pets = models
    pet = pets.create({"name": "Rex"})
    assert pet.store() == []
    assert pet.age == 0


def test_report_duplicate(models):
    owners, pets = models
    owner = owners.create({"name": "Ann"})
    owner.store()
    first = pets.create({"name": "Rex", "fkOwner": owner.id})
    assert first.store() == []
    assert first.store() == []
    second = pets.create({"name": "Rex", "fkOwner": owner.id})
    assert second.store() == [f"a row with (name, owner) = (Rex, {owner.id}) already exists"]


def test_check_integer(models):
    _, pets = models
    pet = pets.create({"age": "old"})
    errors = []
    assert not pet.check_integer(errors, "age", shown="Age")
    assert errors == ['Age should be an integer, got "old"']
    pet.age = "12"
    assert pet.check_integer([], "age")


def test_check_date_format(row_store):
    visits = Registry(row_store).create_factory("Visit")
    errors = []
    assert visits.create({"day": "2024-02-29"}).check_date_format(errors, "day")
    assert not visits.create({"day": "2023-02-29"}).check_date_format(errors, "day")
    assert not visits.create({"day": "29/02/2024"}).check_date_format(errors, "day")
    assert len(errors) == 2
    assert errors[0].startswith("day has an illegal date, got 2023-02-29")


def test_report_duplicate_sibling(row_store):
    reg = Registry(row_store)
    owners = reg.create_factory("Owner")
    reg.create_factory("Pet")
    owner = owners.create({"name": "Sib"})
    owner.store()
    reg.factory("Pet").create({"name": "p", "fkOwner": owner.id}).store()
    errors = []
    assert not owner.report_duplicate_sibling(errors, owner.id, "owner", "Pet", "fkOwner", "pet owner")
    assert errors == ["owner already exists as pet owner"]
    assert not owner.report_duplicate_sibling(errors, None, "owner", "Pet", "fkOwner", "pet owner")
    assert errors[-1] == "missing owner"
