"""Install the vaultauth passwordless accounts package."""

from setuptools import setup, find_packages

setup(
    name='vaultauth',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    include_package_data=True,
    install_requires=[
        "flask>=2.2",
        "flask-sqlalchemy>=3.0",
        "sqlalchemy>=1.4.18",
        "wtforms>=3.0",
        "email-validator>=1.1",
        "python-dateutil",
        "pytz",
        "pyjwt>=2.0",
        "redis>=4.1",
        "fakeredis",
        "retry>=0.9",
    ],
    extras_require={
        'test': ["pytest"],
    },
    zip_safe=False
)
