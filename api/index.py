from api.routes import create_app

# Vercel entry point
app = create_app()
