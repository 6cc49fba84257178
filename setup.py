"""Setup script for RestCache."""

from setuptools import setup, find_namespace_packages

setup(
    name="restcache",
    version="0.1.0",
    description="Time-bounded response cache for FastAPI REST APIs.",
    python_requires=">=3.11",
    packages=find_namespace_packages(include=["restcache", "restcache.*"]),
    install_requires=[
        "fastapi>=0.110",
        "starlette>=0.36",
        "pydantic>=2.10",
        "pydantic-settings>=2.2",
        "anyio>=4.0",
        "orjson>=3.9",
        "redis>=5.0.1",
        "uvicorn>=0.29",
        "gunicorn>=21.2",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "httpx>=0.27",
        ],
    },
)
