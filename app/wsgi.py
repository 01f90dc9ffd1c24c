from app.tourbook import create_app

app = create_app()
