from setuptools import setup, find_packages
setup(
    name="sf_informal_review",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic>=2",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        'console_scripts': [
            'sf_informal_review=sf_informal_review.__main__:main'
        ]
    }
)
