import os
import sys

from uvicorn import run

# Add the backend directory to sys.path
backend_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'backend')
if backend_path not in sys.path:
    sys.path.append(backend_path)

from main import app as application

# Vercel needs the app object to be named 'app'
app = application

if __name__ == "__main__":
    run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
