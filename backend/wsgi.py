# backend/wsgi.py
from contact_ledger import create_app

app = create_app()
