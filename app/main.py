from app.core.app_factory import create_app

# Raises ConfigurationAppError at import when TMDB_API_KEY is missing,
# so the server process exits instead of serving traffic.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
