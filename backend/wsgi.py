# backend/wsgi.py
# Entry point for `flask --app wsgi run` and WSGI servers (e.g. gunicorn wsgi:app).
import os

from jurisonshop import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
