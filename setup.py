from setuptools import setup, find_packages

setup(
    name="marketplace_settlement",
    version="0.1.0",
    packages=find_packages(include=["marketplace", "marketplace.*"]),
    package_data={"marketplace.services.email": ["templates/*.html"]},
    install_requires=[
        "fastapi>=0.115.6",
        "uvicorn>=0.34.0",
        "sqlalchemy[asyncio]>=2.0.36",
        "asyncpg>=0.30.0",
        "python-dotenv>=1.0.1",
        "alembic>=1.14.0",
        "pydantic>=2.10.4",
        "pydantic-settings>=2.7.0",
        "python-jose[cryptography]>=3.3.0",
        "celery[redis]>=5.4.0",
        "redis>=5.2.1",
        "fastapi-mail>=1.4.2",
        "aiogram>=3.15.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.4",
            "pytest-asyncio>=0.25.0",
            "aiosqlite>=0.20.0",
            "httpx>=0.28.1",
        ],
    },
)
