# backend/wsgi.py
from restoledger import create_app

app = create_app()
