from setuptools import setup
import os


def main():
    this_directory = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(this_directory, 'README.rst'), 'r') as f:
        long_description = f.read()

    setup(name='crnsim',
          version='0.1.0',
          description='Deterministic and stochastic simulation of chemical '
                      'reaction networks',
          long_description=long_description,
          long_description_content_type='text/x-rst',
          packages=['crnsim', 'crnsim.simulator', 'crnsim.examples',
                    'crnsim.tests'],
          python_requires='>=3.8',
          install_requires=['numpy', 'scipy>=1.4', 'sympy>=1.6', 'networkx'],
          extras_require={
              'test': ['pytest', 'pandas'],
          },
          keywords=['chemical', 'reaction', 'network', 'gillespie',
                    'stochastic', 'simulation'],
          classifiers=[
            'Development Status :: 3 - Alpha',
            'Environment :: Console',
            'Intended Audience :: Science/Research',
            'License :: OSI Approved :: BSD License',
            'Operating System :: OS Independent',
            'Programming Language :: Python :: 3',
            'Topic :: Scientific/Engineering :: Bio-Informatics',
            'Topic :: Scientific/Engineering :: Chemistry',
            'Topic :: Scientific/Engineering :: Mathematics',
            ],
          )


if __name__ == '__main__':
    main()
