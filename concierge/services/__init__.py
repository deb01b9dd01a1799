# Mark services as a package.
