"""
Tests for BoatModelCatalog.

Covers:
- Creation, version labels and approval
- Default configuration edits on DRAFT versions only
- Archiving
- Building a project configuration from the approved defaults
- Seeding an empty catalog from the bundled settings
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from catalog_config import get_active_config
from catalog_kernel.domain.boat_model import (
    BoatModelInput,
    BoatModelVersionInput,
    DesignCategory,
)
from catalog_kernel.domain.configuration import ArticleItem
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.exceptions import ErrorKind
from tests.support import AUDIT_CTX, article_item, custom_item


def model_input(name="Eagle 28", **overrides) -> BoatModelInput:
    values = dict(
        name=name,
        range="Sport",
        length_m=Decimal("8.5"),
        beam_m=Decimal("2.9"),
        base_price=Decimal("189000"),
        ce_category=DesignCategory.C,
    )
    values.update(overrides)
    return BoatModelInput(**values)


def version_input(**overrides) -> BoatModelVersionInput:
    values = dict(length_m=Decimal("8.6"), beam_m=Decimal("2.9"), base_price=Decimal("195000"))
    values.update(overrides)
    return BoatModelVersionInput(**values)


class TestCreate:
    def test_first_version_is_draft_1_0_0(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()

        [version] = boat_models.list_versions(model.id)
        assert version.version_label == "1.0.0"
        assert version.status == VersionStatus.DRAFT
        assert version.ce_category == DesignCategory.C
        assert boat_models.get_current_version(model.id) is None

    @pytest.mark.parametrize(
        "overrides",
        [{"name": ""}, {"length_m": Decimal("0")}, {"base_price": Decimal("-1")}],
    )
    def test_validation(self, boat_models, overrides):
        result = boat_models.create(model_input(**overrides), AUDIT_CTX)
        assert result.kind == ErrorKind.VALIDATION_ERROR
        assert boat_models.list_models() == []

    def test_default_items_must_reference_catalog(self, boat_models):
        result = boat_models.create(
            model_input(default_configuration_items=(custom_item("Bimini", "100"),)),
            AUDIT_CTX,
        )
        assert result.kind == ErrorKind.VALIDATION_ERROR

    def test_update_header(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        updated = boat_models.update(model.id, AUDIT_CTX, description="Day cruiser").unwrap()
        assert updated.description == "Day cruiser"
        assert updated.name == "Eagle 28"


class TestVersions:
    def test_labels_follow_version_number(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()

        second = boat_models.create_version(model.id, version_input(), AUDIT_CTX).unwrap()
        third = boat_models.create_version(
            model.id, version_input(version_label="2.1.0"), AUDIT_CTX
        ).unwrap()

        assert (second.version_number, second.version_label) == (2, "2.0.0")
        assert (third.version_number, third.version_label) == (3, "2.1.0")

    def test_approval_deprecates_previous(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        [first] = boat_models.list_versions(model.id)
        boat_models.approve_version(first.id, AUDIT_CTX).unwrap()
        second = boat_models.create_version(model.id, version_input(), AUDIT_CTX).unwrap()

        boat_models.approve_version(second.id, AUDIT_CTX).unwrap()

        statuses = [v.status for v in boat_models.list_versions(model.id)]
        assert statuses == [VersionStatus.DEPRECATED, VersionStatus.APPROVED]
        assert boat_models.base_price(model.id) == Decimal("195000")

    def test_version_for_unknown_model(self, boat_models):
        result = boat_models.create_version(uuid4(), version_input(), AUDIT_CTX)
        assert result.code == "BOAT_MODEL_NOT_FOUND"


class TestDefaultConfiguration:
    def test_replace_on_draft(self, boat_models, create_article):
        motor = create_article("EM-20-001")
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        [draft] = boat_models.list_versions(model.id)

        item = article_item("Electric Motor", motor.article.id, motor.version.id, "20000")
        version = boat_models.update_default_configuration(
            draft.id, [item], AUDIT_CTX
        ).unwrap()

        [stored] = boat_models.get_version(version.id).default_configuration_items
        assert isinstance(stored, ArticleItem)
        assert stored.article_version_id == motor.version.id
        assert stored.unit_price_excl_vat == Decimal("20000")

    def test_approved_version_is_frozen(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        [draft] = boat_models.list_versions(model.id)
        boat_models.approve_version(draft.id, AUDIT_CTX).unwrap()

        result = boat_models.update_default_configuration(draft.id, [], AUDIT_CTX)

        assert result.kind == ErrorKind.IMMUTABLE

    def test_custom_items_rejected(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        [draft] = boat_models.list_versions(model.id)
        result = boat_models.update_default_configuration(
            draft.id, [custom_item("Bimini", "100")], AUDIT_CTX
        )
        assert result.kind == ErrorKind.VALIDATION_ERROR


class TestArchive:
    def test_archive_hides_model(self, boat_models, audit_service):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()

        archived = boat_models.archive(model.id, AUDIT_CTX).unwrap()

        assert archived.is_archived
        assert boat_models.list_models() == []
        assert [m.id for m in boat_models.list_models(include_archived=True)] == [model.id]
        assert audit_service.get_trace("BoatModel", model.id).last_action.value == "archive"

    def test_archive_twice(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        boat_models.archive(model.id, AUDIT_CTX).unwrap()
        assert boat_models.archive(model.id, AUDIT_CTX).kind == ErrorKind.INVALID_STATE


class TestBuildConfiguration:
    @pytest.fixture
    def approved_model(self, boat_models, create_article):
        motor = create_article("EM-20-001")
        item = article_item("Electric Motor", motor.article.id, motor.version.id, "20000")
        model = boat_models.create(
            model_input(default_configuration_items=(item,)), AUDIT_CTX
        ).unwrap()
        [draft] = boat_models.list_versions(model.id)
        boat_models.approve_version(draft.id, AUDIT_CTX).unwrap()
        return model, item

    def test_items_get_fresh_ids(self, boat_models, approved_model):
        model, template = approved_model

        first = boat_models.build_configuration(model.id).unwrap()
        second = boat_models.build_configuration(model.id).unwrap()

        assert first[0].id != template.id
        assert first[0].id != second[0].id
        assert first[0].article_version_id == template.article_version_id
        assert first[0].name == "Electric Motor"

    def test_requires_approved_version(self, boat_models):
        model = boat_models.create(model_input(), AUDIT_CTX).unwrap()
        result = boat_models.build_configuration(model.id)
        assert result.kind == ErrorKind.INVALID_STATE

    def test_archived_model(self, boat_models, approved_model):
        model, _ = approved_model
        boat_models.archive(model.id, AUDIT_CTX).unwrap()
        assert boat_models.build_configuration(model.id).kind == ErrorKind.INVALID_STATE

    def test_unknown_model(self, boat_models):
        assert boat_models.build_configuration(uuid4()).kind == ErrorKind.NOT_FOUND


class TestSeedDefaults:
    def test_seeds_bundled_models_once(self, boat_models):
        seeds = get_active_config().boat_model_inputs()

        created = boat_models.seed_defaults(seeds, AUDIT_CTX)

        assert [m.name for m in created] == [
            "Eagle 28",
            "Eagle 32",
            "Eagle 36 TS",
            "Eagle 40",
            "Eagle 44 GTS",
        ]
        assert all(
            boat_models.get_current_version(m.id).status == VersionStatus.APPROVED
            for m in created
        )
        assert boat_models.seed_defaults(seeds, AUDIT_CTX) == []
        assert len(boat_models.list_models()) == 5

    def test_populated_catalog_is_left_alone(self, boat_models):
        boat_models.create(model_input(name="Prototype"), AUDIT_CTX).unwrap()
        assert boat_models.seed_defaults([model_input()], AUDIT_CTX) == []
        assert [m.name for m in boat_models.list_models()] == ["Prototype"]
