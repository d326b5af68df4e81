from setuptools import setup, find_packages

with open('requirements.txt') as f:
    requirements = f.readlines()

with open('test-requirements.txt') as f:
    test_requirements = f.readlines()

setup(name='koji-gateway',
      description='A JSON over HTTP gateway for the Koji build system',
      version='1.0.0',
      classifiers=[
          "Programming Language :: Python",
          "Programming Language :: Python :: 3",
          "Topic :: Software Development :: Build Tools"
      ],
      keywords='koji gateway json xmlrpc build rpm',
      license='MIT',
      packages=find_packages(exclude=['tests', 'tests.*']),
      include_package_data=True,
      zip_safe=False,
      python_requires='>=3.8',
      install_requires=requirements,
      tests_require=test_requirements,
      extras_require={'test': test_requirements},
      entry_points={
          'console_scripts': ['koji_gateway_manager = koji_gateway.manage:main']
      },
      )
