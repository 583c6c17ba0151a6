from setuptools import setup, find_packages

setup(
    name="mediaproxy",
    version="0.1.0",
    packages=find_packages(include=["analyzer", "analyzer.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn",
        "python-multipart",
        "pydantic>=2",
        "pydantic-settings>=2.7",
        "httpx",
        "openai>=1.0",
        "PyMuPDF",
        "python-docx",
        "beautifulsoup4",
        "lxml",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
        ],
    },
)
