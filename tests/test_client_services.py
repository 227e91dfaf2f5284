import pytest

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.schemas.client import ClientCreate, ClientUpdate
from app.services.clients import clients


@pytest.fixture()
def county(db_session, identity):
    c = clients.create(
        db_session,
        identity,
        ClientCreate(name="  Marin County Library ", contact_person="Jo Park"),
    )
    db_session.commit()
    return c


class TestClientsService:
    def test_create_scoped_to_company(self, db_session, county, company):
        assert county.company_id == company.id
        assert county.name == "Marin County Library"

    def test_blank_name_rejected(self, db_session, identity):
        with pytest.raises(ValidationError):
            clients.create(db_session, identity, ClientCreate(name="   "))

    def test_consultant_cannot_create(self, db_session, outsider, identity_for):
        with pytest.raises(AuthorizationError):
            clients.create(
                db_session, identity_for(outsider), ClientCreate(name="Harbor Port")
            )

    def test_list_sorted_by_name(self, db_session, identity, county):
        clients.create(db_session, identity, ClientCreate(name="Acme Schools"))
        db_session.commit()
        assert [c.name for c in clients.list(db_session, identity)] == [
            "Acme Schools",
            "Marin County Library",
        ]

    def test_other_company_cannot_see(self, db_session, county, outsider, identity_for):
        other = identity_for(outsider)
        assert clients.list(db_session, other) == []
        with pytest.raises(NotFoundError):
            clients.get(db_session, other, county.id)

    def test_update(self, db_session, identity, county):
        updated = clients.update(
            db_session, identity, county.id, ClientUpdate(phone="555-0100")
        )
        assert updated.phone == "555-0100"
        assert updated.contact_person == "Jo Park"
        with pytest.raises(ValidationError):
            clients.update(db_session, identity, county.id, ClientUpdate())

    def test_delete_requires_company_admin(
        self, db_session, identity, county, company_admin, identity_for
    ):
        with pytest.raises(AuthorizationError):
            clients.delete(db_session, identity, county.id)
        clients.delete(db_session, identity_for(company_admin), county.id)
        db_session.commit()
        assert clients.list(db_session, identity) == []
