# backend/wsgi.py
from vendshop import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
