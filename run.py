"""Development runner.
Usage: python run.py  (reads .env if present)
Set DOCUMENT_BACKEND=memory to run without a database.
"""

from __future__ import annotations

from dotenv import load_dotenv

from comedor import create_app

load_dotenv()

app = create_app()

if __name__ == "__main__":  # pragma: no cover
    import os
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))
    app.run(debug=True, host=host, port=port)
