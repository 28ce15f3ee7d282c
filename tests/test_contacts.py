import pytest

from empowerher.contacts import mailto_link, sms_link, tel_link, validate_contact
from empowerher.errors import ValidationError


def test_insert_then_fetch_scoped_to_user(contact_store, user, auth_session):
    other = auth_session.sign_up("other@example.com", "pw123456", "Other")
    contact_store.insert(user.id, " Ravi ", "+919000000001", "", "")
    contact_store.insert(other.id, "Someone", "+919000000002")

    contacts = contact_store.list_for_user(user.id)

    assert len(contacts) == 1
    assert contacts[0].name == "Ravi"
    assert contacts[0].email is None
    assert contacts[0].relation is None
    assert contact_store.has_any(other.id)


def test_insert_validates_before_touching_the_database(contact_store, user):
    with pytest.raises(ValidationError):
        contact_store.insert(user.id, "", "+919000000001")
    assert contact_store.list_for_user(user.id) == []


def test_delete_only_own_contacts(contact_store, user, auth_session):
    other = auth_session.sign_up("other@example.com", "pw123456", "Other")
    contact = contact_store.insert(user.id, "Ravi", "+919000000001")

    assert contact_store.delete(other.id, contact.id) is False
    assert contact_store.delete(user.id, contact.id) is True
    assert contact_store.has_any(user.id) is False


def test_validate_contact():
    validate_contact("Ravi", "123")
    with pytest.raises(ValidationError):
        validate_contact("Ravi", None)


def test_platform_links():
    assert tel_link("+919000000001") == "tel:+919000000001"
    assert sms_link("+919000000001") == "sms:+919000000001"
    assert sms_link("+919000000001", "help me") == "sms:+919000000001?body=help%20me"
    assert mailto_link("ravi@example.com") == "mailto:ravi@example.com"
    assert mailto_link("ravi@example.com", "SOS", "call me") == "mailto:ravi@example.com?subject=SOS&body=call%20me"


@pytest.mark.parametrize("name, phone, email, relation", [
    (42, "+919000000001", None, None),
    ("Ravi", 919000000001, None, None),
    ("Ravi", "+919000000001", 7, None),
    ("Ravi", "+919000000001", None, ["Brother"]),
])
def test_non_text_contact_fields_are_validation_errors(contact_store, user, name, phone, email, relation):
    with pytest.raises(ValidationError):
        contact_store.insert(user.id, name, phone, email, relation)
    assert contact_store.list_for_user(user.id) == []
