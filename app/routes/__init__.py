from app.routes.books import bp as books_bp
from app.routes.files import bp as files_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(books_bp)
    app.register_blueprint(files_bp)
