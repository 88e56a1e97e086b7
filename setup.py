# setup.py - numbergame 安装脚本

from setuptools import setup, find_packages

setup(
    name="numbergame",
    version="0.1.0",
    description="Multiplayer bulls-and-cows number guessing game client",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.28",
    ],
    extras_require={
        "dev": [
            "black==23.9.1",
            "flake8==6.1.0",
            "isort==5.12.0",
            "pytest==7.4.0",
            "pytest-cov==4.1.0",
            "pre-commit==3.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "numbergame=numbergame.client.main:main",
        ],
    },
)
