"""Install hypercloud accounts package."""

from setuptools import setup, find_packages

setup(
    name='hypercloud',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    py_modules=['wsgi'],
    package_data={'hypercloud': ['templates/mail/*.txt']},
    install_requires=[
        "flask",
        "wtforms",
        "email-validator",
        "pyjwt",
        "sqlalchemy",
        "pytz",
        "retry",
        "python-json-logger"
    ],
    extras_require={
        'test': ["pytest", "hypothesis"]
    },
    zip_safe=False
)
