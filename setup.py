from setuptools import setup
README = open('README.md', 'r').read()

setup(
      name='stunbind',
      version='0.1.0',
      packages=['stunbind'],
      provides=['stunbind'],
      install_requires=['Twisted'],
      python_requires='>=3.6',
      entry_points={
          'console_scripts': ['stunbind = stunbind.scripts:main'],
          },

      license='MIT',

      description="STUN Binding client and message codec",
      classifiers=[
                   'Programming Language :: Python',
                   'Programming Language :: Python :: 3',
                   'Framework :: Twisted',
                   'Intended Audience :: Developers',
                   'Intended Audience :: Information Technology',
                   'Intended Audience :: System Administrators',
                   'License :: OSI Approved :: MIT License',
                   'Operating System :: OS Independent',
                   'Topic :: Internet',
                   'Topic :: System :: Networking',
                   'Topic :: Software Development :: Libraries :: Python Modules',
                   ],
      long_description=README,
      long_description_content_type='text/markdown',
      )
