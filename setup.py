import pathlib
import setuptools


HERE = pathlib.Path(__file__).parent

README = (HERE/'README.md').read_text()

setuptools.setup(
    name='lms_synchronizer',
    version='1.0',
    description='Exports locally authored courses into Canvas and Moodle '
                'and keeps their structure in sync.',
    long_description=README,
    long_description_content_type='text/markdown',
    license='MIT',
    classifiers=[
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python'
    ],
    packages=setuptools.find_packages(exclude=('tests', 'tests.*')),
    install_requires=[
        'requests',
        'cryptography'
    ],
    extras_require={
        'tests': ['responses']
    },
    python_requires=">=3.8"
)
