# backend/wsgi.py
from comanda import create_app

app = create_app()
