"""Setup configuration for the Room Chat System."""

from setuptools import setup, find_packages

setup(
    name="roomchat",
    version="0.1.0",
    description="A poll-based multi-room chat server and terminal client",
    author="DS-G1-SMS Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "peewee>=3.17.0",
        "rich>=13.0.0",
        "textual>=0.47.0",
        "websockets>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chat-server=chat_server.main:main",
            "chat-client=chat_client.main:main",
            "chat-admin=chat_client.admin:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
