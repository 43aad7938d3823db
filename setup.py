"""Set-up file for helmeq for installations usins ``pip install .``"""
from setuptools import find_packages, setup


with open("requirements.txt") as f:
    required = f.read().splitlines()


setup(
    name="helmeq",
    version="0.1.0",
    license="GPL",
    keywords=["phase equilibrium multicomponent Helmholtz energy equation of state"],
    install_requires=required,
    extras_require={"testing": ["pytest"]},
    description="Residual and Jacobian of multiphase, multicomponent equilibrium "
    + "problems based on residual Helmholtz energy models",
    platforms=["Linux", "Windows", "Mac OS-X"],
    python_requires=">=3.10",
    packages=find_packages("src"),
    package_dir={"": "src"},
    zip_safe=False,
)
