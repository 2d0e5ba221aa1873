from setuptools import find_packages, setup

package_name = "map_localizer"

setup(
    name=package_name,
    version="0.0.1",
    packages=find_packages(exclude=["test", "test.*"]),
    data_files=[
        (
            "share/" + package_name + "/config",
            [
                "config/matching.yaml",
            ],
        ),
    ],
    python_requires=">=3.9",
    install_requires=["setuptools", "numpy", "scipy", "open3d", "PyYAML", "pydantic>=2"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="you",
    maintainer_email="you@example.com",
    description="Scan-to-map LiDAR localization against a prebuilt point cloud map",
    license="Apache-2.0",
    entry_points={
        "console_scripts": [
            "map_localizer_replay = map_localizer.tools.replay:main",
            "map_localizer_build_index = map_localizer.tools.build_index:main",
        ],
    },
)
