from setuptools import setup

setup(
    name='filtertree',
    version='1.0',
    py_modules=[
        'entropy_split',
        'exceptions',
        'filter_transform',
        'filter_tree',
        'tree_builder',
        'tree_logging',
    ],
    description='Classification trees with a locally fitted transform at every split',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    python_requires='>=3.10',
    install_requires=[
        'numpy',
        'scikit-learn',
        'loguru',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
