from setuptools import setup, find_packages

setup(
    name="fitmate-api",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"fitmate": ["policies.yaml"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "pydantic>=2",
        "pydantic-settings",
        "email-validator",
        "python-dotenv",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt==4.0.1",
        "pyyaml",
        "python-multipart",
    ],
    entry_points={
        "console_scripts": [
            "fitmate-init-db=fitmate.db.init_db:main",
        ],
    },
    extras_require={
        "test": [
            "pytest",
            "httpx",
            "aiosqlite",
        ],
    },
)
