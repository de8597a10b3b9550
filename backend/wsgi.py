# backend/wsgi.py
# FLASK_APP entry point: python -m flask --app wsgi.py run
from retailpos import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
