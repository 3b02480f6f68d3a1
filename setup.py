"""
Setup configuration for xcframework_build_tool
"""

from setuptools import setup, find_packages

setup(
    name="xcframework_build_tool",
    version="1.0.0",
    author="XCFramework Build Tool Contributors",
    description="Builds multi-platform XCFrameworks from Swift packages with xcodebuild",
    package_dir={'': 'src'},
    packages=find_packages('src'),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
    ],
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0",
        "rich>=10.0",
        "pydantic>=2.0",
        "pyyaml>=5.1",
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'xcframework-build-tool = xcframework_build_tool.cli:main',
            'xcbt = xcframework_build_tool.cli:main',
        ],
    },
)
