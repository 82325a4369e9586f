# Overview: contact_type tag -> contact model dispatch for the ledger.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Supplier
from ..models.ledger import CONTACT_CUSTOMER, CONTACT_SUPPLIER
from .concurrency import lock_for_update


CONTACT_MODELS = {
    CONTACT_CUSTOMER: Customer,
    CONTACT_SUPPLIER: Supplier,
}


def contact_model_for(contact_type: str):
    """Return the model class for a contact_type tag, or None if unknown."""
    return CONTACT_MODELS.get(contact_type)


def get_contact(contact_type: str, contact_id: int, *, lock: bool = False):
    """
    Load a customer or supplier by tag and id.

    lock=True takes the per-contact write lock (SELECT ... FOR UPDATE) that
    serializes ledger recalculation for that contact until commit.

    Returns None when the tag is unknown or the row does not exist.
    """
    model = contact_model_for(contact_type)
    if model is None:
        return None
    query = db.session.query(model).filter(model.id == contact_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def iter_contacts(contact_type: str):
    """All contact ids of one type, in id order."""
    model = CONTACT_MODELS[contact_type]
    return [row.id for row in db.session.query(model.id).order_by(model.id.asc()).all()]
