"""
Tests for RestaurantService: creation with owner, camelCase updates,
toggling and cascading delete.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from rest_api.models import Category, Dish, Restaurant, Table, TableSession, User
from rest_api.services.domain import RestaurantService
from rest_api.services.domain.restaurant_service import restaurant_output
from shared.config.constants import Roles
from shared.infrastructure.events import ChangeLog
from shared.security.password import verify_password
from shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from shared.utils.schemas import RestaurantCreate


def _create_payload(**overrides):
    data = {
        "name": "Osteria Nuova",
        "address": "Via Po 3",
        "cover_charge_per_person": 2.5,
        "owner": {"email": "Chef@Example.com", "password": "secret123", "name": "Chef"},
    }
    data.update(overrides)
    return RestaurantCreate.model_validate(data)


class TestCreate:
    def test_creates_owner_and_restaurant(self, db_session):
        changes = ChangeLog()
        restaurant = RestaurantService(db_session, changes).create(_create_payload())

        owner = db_session.get(User, restaurant.owner_id)
        assert owner.email == "chef@example.com"
        assert owner.role == Roles.OWNER
        assert owner.restaurant_id == restaurant.id
        assert verify_password("secret123", owner.password_hash)
        assert float(restaurant.cover_charge_per_person) == 2.5
        assert [(e.table, e.type) for e in changes.events] == [("restaurants", "INSERT")]

    def test_duplicate_owner_email(self, db_session, seed_owner_user):
        with pytest.raises(DuplicateEntityError):
            RestaurantService(db_session).create(
                _create_payload(owner={"email": "owner@test.com", "password": "secret123"})
            )
        assert db_session.scalar(select(Restaurant).where(Restaurant.name == "Osteria Nuova")) is None


class TestUpdate:
    def test_camel_case_keys_are_folded(self, db_session, seed_restaurant):
        restaurant = RestaurantService(db_session).update_from_payload(
            seed_restaurant.id,
            {"isActive": False, "allYouCanEat": True, "coverChargePerPerson": 3, "name": "Renamed"},
        )
        assert restaurant.is_active is False
        assert restaurant.all_you_can_eat is True
        assert float(restaurant.cover_charge_per_person) == 3
        assert restaurant.name == "Renamed"

    def test_camel_case_wins_over_snake_case(self, db_session, seed_restaurant):
        restaurant = RestaurantService(db_session).update_from_payload(
            seed_restaurant.id, {"is_active": True, "isActive": False}
        )
        assert restaurant.is_active is False

    def test_unknown_keys_ignored(self, db_session, seed_restaurant):
        restaurant = RestaurantService(db_session).update_from_payload(
            seed_restaurant.id, {"favouriteColour": "red"}
        )
        assert restaurant.name == "Trattoria Test"

    def test_invalid_value(self, db_session, seed_restaurant):
        with pytest.raises(ValidationError):
            RestaurantService(db_session).update_from_payload(
                seed_restaurant.id, {"coverChargePerPerson": -1}
            )

    def test_output_carries_both_spellings(self, seed_restaurant):
        out = restaurant_output(seed_restaurant)
        assert out["is_active"] is True
        assert out["isActive"] is True
        assert out["allYouCanEat"] is False
        assert out["coverChargePerPerson"] == 0

    def test_update_records_old_row(self, db_session, seed_restaurant):
        changes = ChangeLog()
        RestaurantService(db_session, changes).update_from_payload(seed_restaurant.id, {"name": "New"})
        event = changes.events[0]
        assert event.type == "UPDATE"
        assert event.old_record["name"] == "Trattoria Test"
        assert event.record["name"] == "New"


class TestToggle:
    def test_toggle_twice(self, db_session, seed_restaurant):
        service = RestaurantService(db_session)
        assert service.toggle_active(seed_restaurant.id).is_active is False
        assert service.toggle_active(seed_restaurant.id).is_active is True

    def test_missing_restaurant(self, db_session):
        with pytest.raises(NotFoundError):
            RestaurantService(db_session).toggle_active(999)


class TestDelete:
    def test_removes_everything(
        self, db_session, seed_owner_user, seed_staff_user, seed_dishes, open_session, other_restaurant
    ):
        restaurant_id = open_session.restaurant_id
        owner_id = seed_owner_user.id
        changes = ChangeLog()

        result = RestaurantService(db_session, changes).delete(restaurant_id)

        assert result == {"restaurant_id": restaurant_id, "owner_deleted": True}
        db_session.expire_all()
        assert db_session.get(Restaurant, restaurant_id) is None
        assert db_session.get(User, owner_id) is None
        assert db_session.get(User, seed_staff_user.id) is None
        for model in (Dish, Category, Table, TableSession):
            assert db_session.scalars(select(model).where(model.restaurant_id == restaurant_id)).all() == []
        assert db_session.get(Restaurant, other_restaurant.id) is not None
        assert [(e.table, e.type) for e in changes.events] == [("restaurants", "DELETE")]

    def test_owner_delete_failure_keeps_restaurant_deleted(self, db_session, seed_owner_user):
        restaurant_id = seed_owner_user.restaurant_id
        owner_id = seed_owner_user.id
        service = RestaurantService(db_session)

        with patch.object(service, "_delete_owner_account", side_effect=SQLAlchemyError("locked")):
            result = service.delete(restaurant_id)

        assert result["owner_deleted"] is False
        db_session.expire_all()
        assert db_session.get(Restaurant, restaurant_id) is None
        owner = db_session.get(User, owner_id)
        assert owner is not None
        assert owner.restaurant_id is None

    def test_failure_rolls_back(self, db_session, seed_dishes):
        restaurant_id = seed_dishes[0].restaurant_id
        with patch(
            "rest_api.services.domain.restaurant_service.safe_commit",
            side_effect=SQLAlchemyError("boom"),
        ):
            with pytest.raises(SQLAlchemyError):
                RestaurantService(db_session).delete(restaurant_id)

        db_session.rollback()
        assert db_session.get(Restaurant, restaurant_id) is not None
        assert len(db_session.scalars(select(Dish).where(Dish.restaurant_id == restaurant_id)).all()) == 3
