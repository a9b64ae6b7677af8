import os

from pywp.verifier import VerifierOptions


class Task:
    def __init__(self, program : str, args, functions=None, timeout=None, solver=None):
        # base name of program
        self.program = program
        self.program_name = os.path.splitext(os.path.basename(program))[0]
        self.functions = list(functions if functions is not None else args.function)
        self.timeout = timeout if timeout is not None else args.timeout
        self.solver = solver if solver is not None else args.solver
        self.jobs = args.jobs
        self.print_vc = args.print_vc
        self.output_directory = os.path.join(args.output_directory, self.program_name)

    @staticmethod
    def task_from_args(program, args):
        return Task(program, args)

    @staticmethod
    def task_from_yml(yml, base_dir, args):
        """ command line options act as defaults for the keys a task file leaves out """
        input_files = yml['input_files']
        if isinstance(input_files, list):
            input_files = input_files[0]
        functions = yml.get('functions')
        if isinstance(functions, str):
            functions = [functions]
        return Task(
            os.path.join(base_dir, input_files.split(' ')[0]),  # only accept single program for now
            args,
            functions,
            yml.get('timeout'),
            yml.get('solver')
        )

    def options(self) -> VerifierOptions:
        return VerifierOptions(
            timeout=self.timeout,
            solver_name=self.solver,
            jobs=self.jobs,
            functions=self.functions,
            print_vc=self.print_vc
        )

    def __str__(self):
        return '%s' % self.program
