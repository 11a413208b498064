from setuptools import setup, find_packages

setup(
    name="blogapi",
    version="0.1.0",
    packages=find_packages(include=["blogapi", "blogapi.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "sqlalchemy[asyncio]>=2.0",
        "aiosqlite>=0.19",
        "asyncpg>=0.29",
        "redis>=5.0",
        "firebase-admin>=6.4",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.26",
        ],
    },
)
