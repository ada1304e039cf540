from setuptools import setup

setup(name='smo-qp-solver',
      version='0.1',
      description='Sequential minimal optimization for box-constrained '
                  'quadratic programs with one equality constraint.',
      install_requires=['numpy', 'scipy'],
      extras_require={'test': ['pytest']},
      packages=['smosolver'])
