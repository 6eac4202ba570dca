import os

from flask import Flask, jsonify

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from supernova_routes import supernova_bp, init_supernova_bp


def create_app(db=None, config=None):
    """Flask 앱을 만든다. db 를 주지 않으면 $SUPERNOVA_DB (기본값 db.json) 를 연다.

    config (SupernovaConfig) 를 주지 않으면 환경 변수에서 기본 설정을 읽는다.
    """
    if db is None:
        path = os.environ.get("SUPERNOVA_DB", "db.json")
        db = TinyDB(storage=MemoryStorage) if path == ":memory:" else TinyDB(path)

    app = Flask(__name__)
    app.secret_key = os.environ.get("SUPERNOVA_SECRET_KEY", "key")

    init_supernova_bp(db.table("supernova"), config)
    app.register_blueprint(supernova_bp)

    @app.route("/")
    def main():
        return jsonify({
            "service": "supernova",
            "endpoints": ["/supernova/program", "/supernova/prove", "/supernova/proof",
                          "/supernova/verify", "/supernova/reset"],
        })

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
